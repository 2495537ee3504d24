# src/rotator_client/interceptors/session_hooks.py

import logging
import threading
from collections import deque
from typing import Any, Optional

from ..env_tracker import EnvTracker
from ..rotation_client import RotationClient
from ..types import RotationInfo
from .base import RATE_LIMITED, SETTLE_DELAY_SECONDS, RotationHandler, rotated_authorization

try:
    import requests
except ImportError:  # optional dependency; install() becomes a no-op without it
    requests = None

lib_logger = logging.getLogger("rotator_client")

# Set on a response produced by a rotation retry so no later hook retries it again
RETRIED_MARK = "_rotator_retried"

# Guards hook lists shared by every interceptor instance
_install_lock = threading.Lock()


def _is_rotation_hook(hook: Any) -> bool:
    return getattr(hook, "__func__", None) is SessionHookInterceptor._on_response


class SessionHookInterceptor:
    """
    Adds rotation to requests sessions through their response hooks.

    The host application registers each session it wants covered; sessions
    are never discovered implicitly. There is no uninstall: a registered
    session keeps its hook for its lifetime.
    """

    def __init__(
        self,
        tracker: Optional[EnvTracker] = None,
        rotation_client: Optional[RotationClient] = None,
        settle_delay: float = SETTLE_DELAY_SECONDS,
    ):
        # requests runs on caller threads, so rotations are not coalesced here
        self.handler = RotationHandler(
            tracker=tracker,
            rotation_client=rotation_client,
            coalesce=False,
            settle_delay=settle_delay,
        )

    @property
    def history(self) -> "deque[RotationInfo]":
        return self.handler.history

    def is_installed(self, session: Any) -> bool:
        """True if any SessionHookInterceptor already covers the session."""
        hooks = getattr(session, "hooks", None)
        if not isinstance(hooks, dict):
            return False
        return any(_is_rotation_hook(hook) for hook in hooks.get("response") or ())

    def install(self, session: Any) -> bool:
        """
        Registers the rotation hook on a requests session.

        Returns:
            True if the session is covered, False if requests is unavailable
            or the object has no response hook list
        """
        if requests is None:
            lib_logger.debug("requests not found, skipping session interceptor")
            return False

        hooks = getattr(session, "hooks", None)
        if not isinstance(hooks, dict) or not isinstance(hooks.get("response"), list):
            lib_logger.debug(f"{type(session).__name__} has no response hooks, skipping")
            return False

        with _install_lock:
            if self.is_installed(session):
                lib_logger.debug(f"{type(session).__name__} already has a rotation hook")
                return True
            hooks["response"].append(self._on_response)
        lib_logger.debug(f"Session interceptor installed on {type(session).__name__}")
        return True

    def _on_response(self, response, *args, **kwargs):
        """
        Response hook. Returning a response replaces the one the session
        hands back to the caller; returning None keeps the original.
        """
        if getattr(response, RETRIED_MARK, False):
            return None

        request = response.request
        # requests has no request hook; the prepared request is tracked here,
        # before any rotation decision is made
        self.handler.track(request.url, request.headers)

        if response.status_code != RATE_LIMITED:
            return None

        new_value = self.handler.replacement_credential_sync(request.url)
        if new_value is None:
            return None

        self.handler.settle_sync()

        # Release the connection held by the 429 before resending
        response.content
        response.close()

        retry = request.copy()
        retry.headers["Authorization"] = rotated_authorization(request.headers, new_value)

        # The transport adapter sends without dispatching hooks, so the retry is never intercepted again
        retried = response.connection.send(retry, **kwargs)
        retried.history.append(response)
        retried.request = retry
        setattr(retried, RETRIED_MARK, True)
        return retried
