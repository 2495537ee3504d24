# src/rotator_client/interceptors/transport.py

import logging
import threading
from collections import deque
from typing import Optional, Union

import httpx

from ..env_tracker import EnvTracker
from ..rotation_client import RotationClient
from ..types import RotationInfo
from ..utils.rotation_coordinator import RotationCoordinator
from .base import RATE_LIMITED, SETTLE_DELAY_SECONDS, RotationHandler, rotated_authorization

lib_logger = logging.getLogger("rotator_client")

Transport = Union[httpx.BaseTransport, httpx.AsyncBaseTransport]


def _retry_request(request: httpx.Request, new_value: str) -> httpx.Request:
    """Copy of an already-sent request carrying the rotated credential."""
    headers = request.headers.copy()
    headers["Authorization"] = rotated_authorization(request.headers, new_value)
    return httpx.Request(
        request.method,
        request.url,
        headers=headers,
        stream=httpx.ByteStream(request.content),
        extensions=request.extensions,
    )


class RotatingTransport(httpx.BaseTransport, httpx.AsyncBaseTransport):
    """
    httpx transport that retries a rate-limited request once with a rotated
    credential. Built by TransportInterceptor.install(); while its interceptor
    is uninstalled it forwards every request untouched.
    """

    def __init__(self, interceptor: "TransportInterceptor"):
        self._interceptor = interceptor

    @property
    def original(self) -> Transport:
        return self._interceptor.original

    @property
    def wrapped(self) -> Optional[Transport]:
        """The transport the interceptor was given, if any."""
        return self._interceptor._transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        original = self._interceptor.sync_transport()
        if not self._interceptor.installed:
            return original.handle_request(request)

        handler = self._interceptor.handler
        url = str(request.url)
        handler.track(url, request.headers)

        # Buffer the body so it can be replayed on retry
        request.read()
        response = original.handle_request(request)
        if response.status_code != RATE_LIMITED:
            return response

        new_value = handler.replacement_credential_sync(url)
        if new_value is None:
            return response

        handler.settle_sync()
        response.close()
        return original.handle_request(_retry_request(request, new_value))

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        original = self._interceptor.async_transport()
        if not self._interceptor.installed:
            return await original.handle_async_request(request)

        handler = self._interceptor.handler
        url = str(request.url)
        handler.track(url, request.headers)

        await request.aread()
        response = await original.handle_async_request(request)
        if response.status_code != RATE_LIMITED:
            return response

        new_value = await handler.replacement_credential(url)
        if new_value is None:
            return response

        await handler.settle()
        await response.aclose()
        return await original.handle_async_request(_retry_request(request, new_value))

    def close(self) -> None:
        self._interceptor.close_transports()

    async def aclose(self) -> None:
        await self._interceptor.aclose_transports()


class TransportInterceptor:
    """
    Owns the real httpx transport and, once installed, the single
    RotatingTransport that wraps it.

    Example:
        interceptor = TransportInterceptor()
        client = httpx.AsyncClient(transport=interceptor.install())
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        tracker: Optional[EnvTracker] = None,
        rotation_client: Optional[RotationClient] = None,
        coordinator: Optional[RotationCoordinator] = None,
        coalesce: bool = True,
        settle_delay: float = SETTLE_DELAY_SECONDS,
    ):
        if isinstance(transport, RotatingTransport):
            # Never stack a second rotating layer on top of an existing one
            transport = transport.wrapped
        # Without an explicit transport each path gets httpx's own, built on first use
        self._transport = transport
        self._sync_default: Optional[httpx.BaseTransport] = None
        self._async_default: Optional[httpx.AsyncBaseTransport] = None
        self.handler = RotationHandler(
            tracker=tracker,
            rotation_client=rotation_client,
            coordinator=coordinator,
            coalesce=coalesce,
            settle_delay=settle_delay,
        )
        self._wrapper: Optional[RotatingTransport] = None
        self._installed = False
        self._lock = threading.Lock()

    @property
    def original(self) -> Transport:
        """The wrapped transport; the default async transport when none was given."""
        return self._transport if self._transport is not None else self.async_transport()

    @property
    def installed(self) -> bool:
        return self._installed

    @property
    def history(self) -> "deque[RotationInfo]":
        return self.handler.history

    def install(self) -> RotatingTransport:
        """
        Returns the rotating transport, building it on first call. Calling
        it again while installed is a no-op returning the same transport.
        """
        with self._lock:
            if self._installed:
                return self._wrapper
            if self._wrapper is None:
                self._wrapper = RotatingTransport(self)
            self._installed = True
        lib_logger.debug("Transport interceptor installed")
        return self._wrapper

    def uninstall(self) -> Transport:
        """
        Switches the rotating transport to plain pass-through.

        Returns:
            The original transport
        """
        with self._lock:
            was_installed = self._installed
            self._installed = False
        if was_installed:
            lib_logger.debug("Transport interceptor uninstalled")
        return self.original

    def sync_transport(self) -> httpx.BaseTransport:
        if isinstance(self._transport, httpx.BaseTransport):
            return self._transport
        with self._lock:
            if self._sync_default is None:
                if self._transport is not None:
                    lib_logger.warning(
                        f"{type(self._transport).__name__} cannot send blocking requests, "
                        "using httpx.HTTPTransport for them"
                    )
                self._sync_default = httpx.HTTPTransport()
            return self._sync_default

    def async_transport(self) -> httpx.AsyncBaseTransport:
        if isinstance(self._transport, httpx.AsyncBaseTransport):
            return self._transport
        with self._lock:
            if self._async_default is None:
                if self._transport is not None:
                    lib_logger.warning(
                        f"{type(self._transport).__name__} cannot send async requests, "
                        "using httpx.AsyncHTTPTransport for them"
                    )
                self._async_default = httpx.AsyncHTTPTransport()
            return self._async_default

    def close_transports(self) -> None:
        if isinstance(self._transport, httpx.BaseTransport):
            self._transport.close()
        if self._sync_default is not None:
            self._sync_default.close()

    async def aclose_transports(self) -> None:
        if isinstance(self._transport, httpx.AsyncBaseTransport):
            await self._transport.aclose()
        if self._async_default is not None:
            await self._async_default.aclose()


def create_rotating_client(
    interceptor: Optional[TransportInterceptor] = None, **client_kwargs
) -> httpx.AsyncClient:
    """Builds an httpx.AsyncClient whose requests go through an installed interceptor."""
    interceptor = interceptor if interceptor is not None else TransportInterceptor()
    return httpx.AsyncClient(transport=interceptor.install(), **client_kwargs)
