"""FastAPI application initialization."""

import os
from contextlib import asynccontextmanager

import logfire
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.api import health, logs, run
from src.api.dependencies import build_services
from src.config import get_settings
from src.logging_config import setup_logfire
from src.middleware.correlation_id import CorrelationIDMiddleware

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()

    setup_logfire(app)

    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            send_default_pii=False,
            integrations=[FastApiIntegration()],
        )

    # Tests install their own services before startup
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services(settings)

    logfire.info(
        "Application startup complete",
        model=settings.default_model,
        fallback_models=settings.fallback_models,
        storage_backend=settings.storage_backend,
        environment=settings.env,
    )

    yield

    logfire.info(
        "Application shutdown complete",
        active_sessions=app.state.services.admission.active_count,
    )


app = FastAPI(
    title="Customer Support Agent Router",
    description=(
        "Routes customer messages to an answer, a tool call or a human agent, "
        "with hallucination guarding"
    ),
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(CorrelationIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(run.router, tags=["run"])
app.include_router(logs.router, tags=["logs"])


@app.get("/")
def root():
    """Root endpoint."""
    settings = get_settings()
    return {
        "message": "Customer Support Agent Router API",
        "model": settings.default_model,
        "version": APP_VERSION,
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "src.main:app", host="0.0.0.0", port=port, reload=os.getenv("ENV") == "local"
    )
