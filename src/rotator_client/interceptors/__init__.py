from .base import SETTLE_DELAY_SECONDS, RotationHandler
from .session_hooks import SessionHookInterceptor
from .transport import RotatingTransport, TransportInterceptor, create_rotating_client

__all__ = [
    "SETTLE_DELAY_SECONDS",
    "RotationHandler",
    "RotatingTransport",
    "SessionHookInterceptor",
    "TransportInterceptor",
    "create_rotating_client",
]
