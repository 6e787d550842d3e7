"""
Middleware modules
"""
from .logging_middleware import LoggingMiddleware
from .auth import verify_admin_key, verify_service_key

__all__ = ["LoggingMiddleware", "verify_admin_key", "verify_service_key"]
