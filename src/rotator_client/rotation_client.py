# src/rotator_client/rotation_client.py

import logging
from typing import Any, Dict, Optional, Union

import httpx

from .config import RotationSettings, get_settings
from .types import RotationResult

lib_logger = logging.getLogger("rotator_client")

ROTATE_TIMEOUT_SECONDS = 10.0
HEALTH_TIMEOUT_SECONDS = 2.0

SERVICE_NOT_AVAILABLE = "service not available"

# Failure modes of a call to the rotation service that are reported, not raised
_NETWORK_ERRORS = (httpx.HTTPError, httpx.InvalidURL, OSError)


def mask_secret(value: Optional[str]) -> str:
    """Renders a credential for logs as ***abcd."""
    if not value:
        return "<empty>"
    return f"***{value[-4:]}"


class RotationClient:
    """
    Stateless client for the local rotation service.

    Every failure mode (disabled, unreachable, rejected, malformed) comes back
    as an unsuccessful RotationResult so interceptors never handle exceptions
    on the request path.
    """

    def __init__(
        self,
        settings: Optional[RotationSettings] = None,
        transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None,
    ):
        self._settings = settings
        # The service is reached through its own transport, never an intercepted one
        self._transport = transport

    @property
    def settings(self) -> RotationSettings:
        return self._settings if self._settings is not None else get_settings()

    def _rotate_payload(self, settings: RotationSettings, secret_name: str) -> Dict[str, Any]:
        payload = {"secret_name": secret_name, "env": settings.environment}
        if settings.service_name:
            payload["service"] = settings.service_name
        return payload

    def _disabled_result(self) -> RotationResult:
        lib_logger.debug("Rotation service not available, skipping rotation")
        return RotationResult(success=False, message=SERVICE_NOT_AVAILABLE)

    def _unreachable_result(self, error: Exception) -> RotationResult:
        cause = str(error) or type(error).__name__
        lib_logger.debug(f"Rotation service unreachable: {cause}")
        return RotationResult(success=False, message=f"service unreachable: {cause}")

    def _parse_rotate_response(self, response: httpx.Response) -> RotationResult:
        if not response.is_success:
            lib_logger.debug(
                f"Rotation failed: {response.status_code} - {response.text}"
            )
            return RotationResult(
                success=False,
                message=f"service returned {response.status_code}: {response.text}",
            )

        try:
            result = RotationResult.model_validate(response.json())
        except ValueError as e:
            lib_logger.debug(f"Rotation service sent an unusable response: {e}")
            return RotationResult(
                success=False, message=f"invalid response from service: {e}"
            )

        lib_logger.debug(
            f"Rotation response: success={result.success}, "
            f"has_new_value={bool(result.new_value)}, pool_status={result.pool_status}"
        )
        return result

    async def rotate(self, secret_name: str) -> RotationResult:
        """
        Asks the rotation service for a replacement value for the named secret.

        Args:
            secret_name: Environment variable name of the exhausted secret

        Returns:
            RotationResult; never raises
        """
        settings = self.settings
        if not settings.enabled:
            return self._disabled_result()

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=ROTATE_TIMEOUT_SECONDS
            ) as client:
                response = await client.post(
                    f"{settings.service_url}/rotate",
                    json=self._rotate_payload(settings, secret_name),
                )
        except _NETWORK_ERRORS as e:
            return self._unreachable_result(e)

        return self._parse_rotate_response(response)

    def rotate_sync(self, secret_name: str) -> RotationResult:
        """Blocking counterpart of rotate() for thread-based HTTP clients."""
        settings = self.settings
        if not settings.enabled:
            return self._disabled_result()

        try:
            with httpx.Client(
                transport=self._transport, timeout=ROTATE_TIMEOUT_SECONDS
            ) as client:
                response = client.post(
                    f"{settings.service_url}/rotate",
                    json=self._rotate_payload(settings, secret_name),
                )
        except _NETWORK_ERRORS as e:
            return self._unreachable_result(e)

        return self._parse_rotate_response(response)

    async def check_health(self) -> bool:
        """Liveness probe; True only if the service answers /health with a 2xx."""
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=HEALTH_TIMEOUT_SECONDS
            ) as client:
                response = await client.get(f"{self.settings.service_url}/health")
            return response.is_success
        except _NETWORK_ERRORS as e:
            lib_logger.debug(f"Rotation service health check failed: {e}")
            return False

    def check_health_sync(self) -> bool:
        try:
            with httpx.Client(
                transport=self._transport, timeout=HEALTH_TIMEOUT_SECONDS
            ) as client:
                response = client.get(f"{self.settings.service_url}/health")
            return response.is_success
        except _NETWORK_ERRORS as e:
            lib_logger.debug(f"Rotation service health check failed: {e}")
            return False


# Global singleton instance
rotation_client = RotationClient()


def get_rotation_client() -> RotationClient:
    """
    Get the global rotation client instance.

    Returns:
        RotationClient instance
    """
    return rotation_client
