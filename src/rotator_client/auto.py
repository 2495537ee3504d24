"""
One-call setup for applications that want rotation without wiring the
pieces themselves.

    interceptor = await initialize(sessions=[requests_session])
    client = httpx.AsyncClient(transport=interceptor.install()) if interceptor else httpx.AsyncClient()
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from .config import auto_detect_settings, load_env_files, set_settings
from .interceptors import SessionHookInterceptor, TransportInterceptor
from .interceptors.transport import Transport
from .utils.log_setup import setup_logging

lib_logger = logging.getLogger("rotator_client")


async def initialize(
    sessions: Iterable = (),
    transport: Optional[Transport] = None,
    env_dir: Optional[Path] = None,
) -> Optional[TransportInterceptor]:
    """
    Loads .env files, detects settings, probes the rotation service and, if it
    is available, installs the interceptors.

    Args:
        sessions: requests sessions to register with a SessionHookInterceptor
        transport: Real httpx transport to wrap; defaults to httpx.HTTPTransport or
            httpx.AsyncHTTPTransport, whichever the client needs
        env_dir: Directory holding .env files; defaults to the working directory

    Returns:
        The installed TransportInterceptor, or None when rotation is disabled
        or initialisation failed. Never raises.
    """
    try:
        load_env_files(env_dir)
        settings = await auto_detect_settings()
        set_settings(settings)

        if settings.debug:
            setup_logging(debug=True)

        if not settings.enabled:
            lib_logger.debug("Rotation service not available, auto-rotation disabled")
            return None

        interceptor = TransportInterceptor(transport)
        interceptor.install()

        session_interceptor = SessionHookInterceptor()
        for session in sessions:
            session_interceptor.install(session)

        lib_logger.debug(
            f"Auto-rotation initialized: environment={settings.environment}, "
            f"service={settings.service_name}, service_url={settings.service_url}"
        )
        return interceptor
    except Exception as e:
        lib_logger.error(f"Failed to initialize auto-rotation: {e}")
        return None
