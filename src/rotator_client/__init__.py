"""
Rotates rate-limited API keys behind the application's back.

Outbound HTTP calls are attributed to the environment variable that holds
their credential; when a call comes back 429 the local rotation service is
asked for a replacement and the call is retried once.
"""

from .config import (
    RotationSettings,
    auto_detect_settings,
    configure,
    detect_service,
    get_settings,
    resolve_settings,
    set_settings,
)
from .env_tracker import EnvTracker, env_tracker, get_env_tracker
from .interceptors import (
    RotatingTransport,
    SessionHookInterceptor,
    TransportInterceptor,
    create_rotating_client,
)
from .rotation_client import RotationClient, get_rotation_client, rotation_client
from .types import PoolStatus, RotationInfo, RotationResult, TrackedAssociation

__all__ = [
    "EnvTracker",
    "PoolStatus",
    "RotatingTransport",
    "RotationClient",
    "RotationInfo",
    "RotationResult",
    "RotationSettings",
    "SessionHookInterceptor",
    "TrackedAssociation",
    "TransportInterceptor",
    "auto_detect_settings",
    "configure",
    "create_rotating_client",
    "detect_service",
    "env_tracker",
    "get_env_tracker",
    "get_rotation_client",
    "get_settings",
    "resolve_settings",
    "rotation_client",
    "set_settings",
]
