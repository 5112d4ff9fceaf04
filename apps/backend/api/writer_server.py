import os
import sys
import logging
from typing import Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import uvicorn

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

load_dotenv(override=True)

from config.logging_config import apply_logging_config
from config.settings import get_settings
from api.middleware import RequestLoggingMiddleware
from api.requests.api_images import router as images_router

logger = logging.getLogger(__name__)


def init_sentry(dsn: str, environment: str) -> bool:
    """Initialize Sentry when a DSN is configured."""
    if not dsn:
        return False
    sentry_logging = LoggingIntegration(
        level=logging.INFO,        # Capture info and above as breadcrumbs
        event_level=logging.ERROR  # Send errors as events
    )
    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FastApiIntegration(transaction_style='endpoint'),
            sentry_logging,
        ],
        traces_sample_rate=0.1,
        environment=environment,
        release=os.getenv("RENDER_GIT_COMMIT", "unknown"),
        send_default_pii=False,
    )
    return True


def create_app() -> FastAPI:
    settings = get_settings()
    logging_config = apply_logging_config()
    init_sentry(settings.server.sentry_dsn, settings.server.environment)

    app = FastAPI(title="Zen Writing API", version="1.0.0")

    app.add_middleware(RequestLoggingMiddleware, log_requests=logging_config.get("log_requests", True))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
        max_age=3600,
    )

    app.include_router(images_router)

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    if not settings.unsplash.is_configured:
        logger.warning("UNSPLASH_ACCESS_KEY is not set; /api/images will answer 500")

    return app


app = create_app()


if __name__ == "__main__":
    port = get_settings().server.port
    logger.info(f"Starting Zen Writing API on http://0.0.0.0:{port}")
    uvicorn.run("api.writer_server:app", host="0.0.0.0", port=port, reload=False, workers=1)
