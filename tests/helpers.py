"""Test doubles shared across the rotator_client tests."""

import io
from typing import List, Optional

import httpx
import requests
from requests.adapters import BaseAdapter

from rotator_client.types import RotationResult


class FakeRotationClient:
    """Stands in for RotationClient and records every rotate call."""

    def __init__(self, result: RotationResult):
        self.result = result
        self.calls: List[str] = []

    async def rotate(self, secret_name: str) -> RotationResult:
        self.calls.append(secret_name)
        return self.result

    def rotate_sync(self, secret_name: str) -> RotationResult:
        self.calls.append(secret_name)
        return self.result


class FakeAdapter(BaseAdapter):
    """requests transport adapter answering with a scripted list of status codes."""

    def __init__(self, statuses: List[int]):
        super().__init__()
        self.statuses = list(statuses)
        self.sent: List[requests.PreparedRequest] = []

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        self.sent.append(request)
        response = requests.Response()
        response.status_code = self.statuses.pop(0)
        response._content = b""
        response._content_consumed = True
        response.raw = io.BytesIO(b"")
        response.url = request.url
        response.request = request
        response.connection = self
        return response

    def close(self):
        pass


class ScriptedUpstream:
    """httpx.MockTransport handler answering with a scripted list of status codes."""

    def __init__(self, statuses: List[int]):
        self.statuses = list(statuses)
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.statuses.pop(0), text="upstream")


def rotated(new_value: Optional[str] = "new123") -> RotationResult:
    return RotationResult(success=True, new_value=new_value)
