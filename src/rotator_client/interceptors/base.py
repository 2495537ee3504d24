# src/rotator_client/interceptors/base.py

import asyncio
import logging
import time
from collections import deque
from typing import Any, Deque, Optional

from ..env_tracker import EnvTracker, authorization_scheme, get_env_tracker
from ..rotation_client import RotationClient, get_rotation_client, mask_secret
from ..types import RotationInfo, RotationResult
from ..utils.rotation_coordinator import RotationCoordinator, get_rotation_coordinator

lib_logger = logging.getLogger("rotator_client")

RATE_LIMITED = 429
SETTLE_DELAY_SECONDS = 1.0
HISTORY_SIZE = 100


def rotated_authorization(headers: Any, new_value: str) -> str:
    """Authorization value carrying the new credential under the original scheme."""
    return f"{authorization_scheme(headers)} {new_value}"


class RotationHandler:
    """
    The part of the 429 protocol both interceptors share: find the secret
    behind a rate-limited host, rotate it and hand back the new value.

    Retrying is left to the interceptor, which alone knows how to resend a
    request through the transport or adapter it wraps.
    """

    def __init__(
        self,
        tracker: Optional[EnvTracker] = None,
        rotation_client: Optional[RotationClient] = None,
        coordinator: Optional[RotationCoordinator] = None,
        coalesce: bool = True,
        settle_delay: float = SETTLE_DELAY_SECONDS,
    ):
        self.tracker = tracker if tracker is not None else get_env_tracker()
        self.rotation_client = (
            rotation_client if rotation_client is not None else get_rotation_client()
        )
        if coalesce:
            self.coordinator = coordinator if coordinator is not None else get_rotation_coordinator()
        else:
            self.coordinator = None
        self.settle_delay = settle_delay
        self.history: Deque[RotationInfo] = deque(maxlen=HISTORY_SIZE)

    def track(self, url: Any, headers: Any) -> None:
        self.tracker.track_request(url, headers)

    def _secret_for(self, url: Any) -> Optional[str]:
        secret_name = self.tracker.get_secret_name(url)
        if secret_name is None:
            lib_logger.debug(f"Could not detect secret name for URL: {url}")
        else:
            lib_logger.debug(
                f"Rate limit hit (429) for {secret_name}, triggering rotation..."
            )
        return secret_name

    def _accept(self, secret_name: str, result: RotationResult) -> Optional[str]:
        succeeded = bool(result.success and result.new_value)
        self.history.append(RotationInfo(secret_name=secret_name, success=succeeded))

        if not succeeded:
            lib_logger.debug(
                f"Rotation failed or no new value for {secret_name}, returning 429"
                + (f" ({result.message})" if result.message else "")
            )
            return None

        lib_logger.debug(
            f"Rotation successful, retrying with new key {mask_secret(result.new_value)}"
        )
        return result.new_value

    async def _rotate(self, secret_name: str) -> RotationResult:
        try:
            if self.coordinator is not None:
                return await self.coordinator.execute_rotation(
                    secret_name, self.rotation_client.rotate, scope=self.rotation_client
                )
            return await self.rotation_client.rotate(secret_name)
        except Exception as e:
            lib_logger.debug(f"Rotation of {secret_name} raised: {e}")
            return RotationResult(success=False, message=str(e))

    def _rotate_sync(self, secret_name: str) -> RotationResult:
        try:
            return self.rotation_client.rotate_sync(secret_name)
        except Exception as e:
            lib_logger.debug(f"Rotation of {secret_name} raised: {e}")
            return RotationResult(success=False, message=str(e))

    async def replacement_credential(self, url: Any) -> Optional[str]:
        """
        Rotates the secret behind a rate-limited URL.

        Returns:
            The new credential value, or None if the original 429 should stand
        """
        secret_name = self._secret_for(url)
        if secret_name is None:
            return None
        return self._accept(secret_name, await self._rotate(secret_name))

    def replacement_credential_sync(self, url: Any) -> Optional[str]:
        secret_name = self._secret_for(url)
        if secret_name is None:
            return None
        return self._accept(secret_name, self._rotate_sync(secret_name))

    async def settle(self) -> None:
        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)

    def settle_sync(self) -> None:
        if self.settle_delay > 0:
            time.sleep(self.settle_delay)
