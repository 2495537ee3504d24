"""
Configuration for the rotation interceptors.

Settings are resolved from environment variables (optionally seeded from .env
files) and held in a process-wide value that interceptors read at call time.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

lib_logger = logging.getLogger("rotator_client")

DEFAULT_SERVICE_URL = "http://localhost:9123"
DEFAULT_ENVIRONMENT = "dev"

# Hosting platform marker variable -> service name reported to the rotation service
SERVICE_MARKERS: Dict[str, str] = {
    "VERCEL": "vercel",
    "NETLIFY_SITE_ID": "netlify",
    "RENDER_SERVICE_ID": "render",
    "CF_PAGES": "cloudflare",
    "FLY_APP_NAME": "fly",
    "AWS_LAMBDA_FUNCTION_NAME": "aws-lambda",
    "K_SERVICE": "cloud-run",
}

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class RotationSettings(BaseModel):
    enabled: bool = True
    service_url: str = DEFAULT_SERVICE_URL
    environment: str = DEFAULT_ENVIRONMENT
    service_name: Optional[str] = None
    debug: bool = False


def _parse_flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    lib_logger.warning(f"Unrecognised boolean value '{value}', using {default}")
    return default


def detect_service(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """
    Detects the hosting platform from its marker environment variables.

    Returns:
        The platform name, or None if no known marker is set
    """
    environ = os.environ if environ is None else environ
    for marker, service in SERVICE_MARKERS.items():
        if environ.get(marker):
            return service
    return None


def resolve_settings(environ: Optional[Mapping[str, str]] = None) -> RotationSettings:
    """
    Builds settings from environment variables without touching the network.

    Args:
        environ: Mapping to read from; defaults to os.environ

    Returns:
        Resolved RotationSettings
    """
    environ = os.environ if environ is None else environ

    environment = (
        environ.get("ROTATOR_ENV") or environ.get("ENVIRONMENT") or DEFAULT_ENVIRONMENT
    )
    service_url = (environ.get("ROTATOR_SERVICE_URL") or DEFAULT_SERVICE_URL).rstrip("/")

    return RotationSettings(
        enabled=_parse_flag(environ.get("ROTATOR_ENABLED"), True),
        service_url=service_url,
        environment=environment,
        service_name=environ.get("ROTATOR_SERVICE") or detect_service(environ),
        debug=_parse_flag(environ.get("ROTATOR_DEBUG"), False),
    )


async def auto_detect_settings(
    environ: Optional[Mapping[str, str]] = None,
) -> RotationSettings:
    """
    Resolves settings and probes the rotation service.

    Rotation stays enabled only if the service answers its health check,
    unless ROTATOR_ENABLED already switched it off.
    """
    # Imported here to avoid a cycle: the rotation client reads settings from this module
    from .rotation_client import RotationClient

    settings = resolve_settings(environ)
    if not settings.enabled:
        lib_logger.debug("Rotation disabled by ROTATOR_ENABLED, skipping health check")
        return settings

    healthy = await RotationClient(settings=settings).check_health()
    if not healthy:
        lib_logger.debug(
            f"Rotation service at {settings.service_url} is not healthy, disabling rotation"
        )
    return settings.model_copy(update={"enabled": healthy})


def load_env_files(root_dir: Optional[Path] = None) -> int:
    """
    Loads the main .env and any additional *.env files without overriding
    variables that are already set.

    Returns:
        Number of .env files loaded
    """
    root_dir = root_dir or Path.cwd()
    env_files = []

    # Main .env first, so its values win over the additional files
    main_env = root_dir / ".env"
    if main_env.is_file():
        env_files.append(main_env)
    env_files.extend(f for f in sorted(root_dir.glob("*.env")) if f.name != ".env")

    for env_file in env_files:
        load_dotenv(env_file, override=False)

    if env_files:
        lib_logger.debug(
            f"Loaded {len(env_files)} .env file(s): {', '.join(f.name for f in env_files)}"
        )
    return len(env_files)


_settings = RotationSettings()


def get_settings() -> RotationSettings:
    return _settings


def set_settings(settings: RotationSettings) -> None:
    global _settings
    _settings = settings


def configure(**options) -> RotationSettings:
    """
    Merges the given options into the process-wide settings.

    Example:
        configure(service_url="http://rotator:9123", environment="production")
    """
    unknown = set(options) - set(RotationSettings.model_fields)
    if unknown:
        raise ValueError(f"Unknown rotation settings: {', '.join(sorted(unknown))}")

    settings = RotationSettings.model_validate({**_settings.model_dump(), **options})
    set_settings(settings)
    return settings
