"""API middleware for rate limiting, CORS and compression."""

import logging

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from core.config import HTTPConfig

logger = logging.getLogger(__name__)

GZIP_MIN_SIZE = 1000


def create_limiter() -> Limiter:
    return Limiter(key_func=get_remote_address)


def setup_rate_limiting(app: FastAPI, limiter: Limiter):
    """Attach the limiter and its 429 handler to the application."""
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def setup_middleware(app: FastAPI, http_config: HTTPConfig, limiter: Limiter):
    """Configure all middleware for FastAPI application.

    Sets up CORS, GZip compression, and rate limiting.
    """
    allowed_origins = http_config.cors_allowed_origins
    if not allowed_origins:
        logger.warning("CORS_ALLOWED_ORIGINS is empty, CORS disabled")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        # Credentials cannot be combined with a wildcard origin
        allow_credentials="*" not in allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.add_middleware(GZipMiddleware, minimum_size=GZIP_MIN_SIZE)

    setup_rate_limiting(app, limiter)
