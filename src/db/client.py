"""Supabase client initialization."""

from supabase import Client, create_client

from src.config import get_settings


def get_supabase_client() -> Client:
    """Get Supabase client instance.

    Raises:
        ValueError: If the Supabase URL or service key is not configured
    """
    settings = get_settings()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError(
            "SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the supabase backend"
        )
    return create_client(settings.supabase_url, settings.supabase_service_key)
