# src/rotator_client/utils/rotation_coordinator.py

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple

from ..types import RotationResult

lib_logger = logging.getLogger("rotator_client")


class RotationCoordinator:
    """
    Coalesces concurrent rotations of the same secret. While a rotation for a
    secret is in flight, later callers await that rotation's result instead of
    asking the rotation service a second time.

    Rotations are keyed by secret name and by scope, the object performing the
    rotation. Two rotation clients pointed at different services or
    environments never share a result. A rotation running on another event
    loop is never joined.
    """

    def __init__(self):
        self._active_rotations: Dict[Tuple[Hashable, str], asyncio.Task] = {}

    async def execute_rotation(
        self,
        secret_name: str,
        rotate_func: Callable[[str], Awaitable[RotationResult]],
        scope: Optional[Any] = None,
    ) -> RotationResult:
        """
        Run rotate_func for the secret, or join the rotation already running.

        Args:
            secret_name: Name of the secret being rotated
            rotate_func: Async function performing the rotation
            scope: Object performing the rotation, usually the RotationClient;
                only callers with the same scope share a rotation

        Returns:
            Result of the (possibly shared) rotation
        """
        # The running task keeps rotate_func (and so the scope) alive, so its id stays unique
        key = (id(scope) if scope is not None else None, secret_name)
        loop = asyncio.get_running_loop()

        active_task = self._active_rotations.get(key)
        if active_task is not None and not active_task.done() and active_task.get_loop() is loop:
            lib_logger.debug(f"Rotation already in progress for {secret_name}, waiting...")
            # Shield so one waiter's cancellation does not cancel the shared rotation
            return await asyncio.shield(active_task)

        task = loop.create_task(rotate_func(secret_name))
        self._active_rotations[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))
        return await asyncio.shield(task)

    def _forget(self, key: Tuple[Hashable, str], task: asyncio.Task) -> None:
        if self._active_rotations.get(key) is task:
            del self._active_rotations[key]

    @property
    def in_flight(self) -> int:
        return len(self._active_rotations)


# Global singleton instance
_coordinator = RotationCoordinator()


def get_rotation_coordinator() -> RotationCoordinator:
    """
    Get the global rotation coordinator instance.

    Returns:
        RotationCoordinator instance
    """
    return _coordinator
