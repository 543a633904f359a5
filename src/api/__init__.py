"""HTTP API helpers."""

from api.middleware import create_limiter, setup_middleware

__all__ = ['create_limiter', 'setup_middleware']
