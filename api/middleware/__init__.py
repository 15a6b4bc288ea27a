"""
API Middleware.
"""

from .auth import api_key_auth
from .metrics import MetricsMiddleware, metrics_endpoint, record_turn, record_turn_error

__all__ = [
    "api_key_auth",
    "MetricsMiddleware",
    "metrics_endpoint",
    "record_turn",
    "record_turn_error",
]
