"""Apply the SQL migrations for the supabase storage backend.

Requires DATABASE_URL in .env or .env.local (the Postgres connection string
of the Supabase project).

Usage:
    python -m src.db.migrate
"""

import os
from pathlib import Path

import psycopg
from dotenv import load_dotenv

_project_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(_project_root / ".env")
load_dotenv(_project_root / ".env.local")

MIGRATIONS_DIR = _project_root / "migrations"


def migration_files(migrations_dir: Path = MIGRATIONS_DIR) -> list[Path]:
    """SQL files in lexicographic order (001_initial.sql, 002_..., ...).

    Raises:
        SystemExit: If the directory is missing or holds no .sql files
    """
    if not migrations_dir.is_dir():
        raise SystemExit(f"Migrations directory not found: {migrations_dir}")
    files = sorted(migrations_dir.glob("*.sql"))
    if not files:
        raise SystemExit(f"No .sql files found in {migrations_dir}")
    return files


def run_migrations(database_url: str | None = None) -> None:
    """Execute every migration file against the database."""
    database_url = database_url or os.environ.get("DATABASE_URL")
    if not database_url:
        raise SystemExit(
            "DATABASE_URL is not set. Add your Postgres connection string to "
            ".env or .env.local."
        )

    files = migration_files()

    try:
        with psycopg.connect(database_url, autocommit=True) as conn:
            with conn.cursor() as cur:
                for path in files:
                    print(f"Applying {path.name}...")
                    cur.execute(path.read_text())
                    print(f"  OK {path.name}")
    except psycopg.OperationalError as e:
        hint = ""
        if "password authentication failed" in str(e):
            hint = (
                "\n\nUse the database password (not the service key), "
                "percent-encoding any of # @ % : it contains."
            )
        raise SystemExit(f"Database connection failed: {e}{hint}") from e

    print("Migrations complete.")


if __name__ == "__main__":
    run_migrations()
