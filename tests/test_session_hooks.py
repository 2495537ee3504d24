"""Tests for the requests session hook interceptor."""

import requests

from rotator_client.env_tracker import EnvTracker
from rotator_client.interceptors import SessionHookInterceptor
from rotator_client.interceptors import session_hooks
from rotator_client.types import RotationResult

from .helpers import FakeAdapter, FakeRotationClient, rotated

VIDEOS_URL = "https://api.tiktok.com/v1/videos"
AUTH = {"Authorization": "Bearer sk_test_12345"}


def _session(statuses):
    adapter = FakeAdapter(statuses)
    session = requests.Session()
    session.mount("https://", adapter)
    return session, adapter


def _interceptor(rotation_client) -> SessionHookInterceptor:
    return SessionHookInterceptor(
        tracker=EnvTracker(), rotation_client=rotation_client, settle_delay=0
    )


class TestSessionRotation:
    """Test the rotate-and-retry protocol through requests hooks."""

    def test_retries_once_with_new_credential(self, tiktok_env):
        session, adapter = _session([429, 200])
        rotation = FakeRotationClient(rotated("new123"))
        _interceptor(rotation).install(session)

        response = session.get(VIDEOS_URL, headers=AUTH)

        assert response.status_code == 200
        assert len(adapter.sent) == 2
        assert adapter.sent[1].headers["Authorization"] == "Bearer new123"
        assert adapter.sent[0].headers["Authorization"] == "Bearer sk_test_12345"
        assert rotation.calls == ["TIKTOK_API_KEY"]

    def test_rate_limited_response_kept_in_history(self, tiktok_env):
        session, _ = _session([429, 200])
        _interceptor(FakeRotationClient(rotated())).install(session)

        response = session.get(VIDEOS_URL, headers=AUTH)

        assert [r.status_code for r in response.history] == [429]
        assert response.request.headers["Authorization"] == "Bearer new123"

    def test_failed_rotation_returns_original_429(self, tiktok_env):
        session, adapter = _session([429])
        rotation = FakeRotationClient(RotationResult(success=False, message="pool exhausted"))
        _interceptor(rotation).install(session)

        response = session.get(VIDEOS_URL, headers=AUTH)

        assert response.status_code == 429
        assert len(adapter.sent) == 1
        assert rotation.calls == ["TIKTOK_API_KEY"]

    def test_unknown_secret_skips_rotation(self):
        session, adapter = _session([429])
        rotation = FakeRotationClient(rotated())
        _interceptor(rotation).install(session)

        response = session.get("https://unknown-api.com/x")

        assert response.status_code == 429
        assert rotation.calls == []
        assert len(adapter.sent) == 1

    def test_retry_429_is_returned_without_further_retry(self, tiktok_env):
        session, adapter = _session([429, 429])
        rotation = FakeRotationClient(rotated())
        _interceptor(rotation).install(session)

        response = session.get(VIDEOS_URL, headers=AUTH)

        assert response.status_code == 429
        assert len(adapter.sent) == 2
        assert rotation.calls == ["TIKTOK_API_KEY"]

    def test_other_statuses_pass_through(self, tiktok_env):
        session, adapter = _session([503])
        rotation = FakeRotationClient(rotated())
        _interceptor(rotation).install(session)

        response = session.get(VIDEOS_URL, headers=AUTH)

        assert response.status_code == 503
        assert rotation.calls == []

    def test_tracks_requests_made_through_the_session(self, tiktok_env):
        session, _ = _session([200])
        tracker = EnvTracker()
        SessionHookInterceptor(tracker=tracker, settle_delay=0).install(session)

        session.get(VIDEOS_URL, headers=AUTH)

        assert tracker.get_secret_name(VIDEOS_URL) == "TIKTOK_API_KEY"

    def test_records_rotation_history(self, tiktok_env):
        session, _ = _session([429])
        interceptor = _interceptor(FakeRotationClient(RotationResult(success=False)))
        interceptor.install(session)

        session.get(VIDEOS_URL, headers=AUTH)

        assert len(interceptor.history) == 1
        assert interceptor.history[0].success is False

    def test_retry_replays_request_body(self, tiktok_env):
        session, adapter = _session([429, 200])
        _interceptor(FakeRotationClient(rotated())).install(session)

        response = session.post(VIDEOS_URL, headers=AUTH, json={"title": "clip"})

        assert response.status_code == 200
        first, retry = adapter.sent
        assert retry.method == "POST"
        assert retry.body == first.body == b'{"title": "clip"}'
        assert retry.headers["Content-Type"] == "application/json"
        assert retry.headers["Authorization"] == "Bearer new123"


class TestSessionInstallation:
    """Test registration and the availability guard."""

    def test_install_twice_registers_one_hook(self, tiktok_env):
        session, adapter = _session([429, 200])
        rotation = FakeRotationClient(rotated())
        interceptor = _interceptor(rotation)

        assert interceptor.install(session) is True
        assert interceptor.install(session) is True

        assert len(session.hooks["response"]) == 1
        session.get(VIDEOS_URL, headers=AUTH)
        assert len(adapter.sent) == 2
        assert rotation.calls == ["TIKTOK_API_KEY"]

    def test_is_installed(self):
        session, _ = _session([])
        interceptor = _interceptor(FakeRotationClient(rotated()))
        assert interceptor.is_installed(session) is False
        interceptor.install(session)
        assert interceptor.is_installed(session) is True

    def test_object_without_hooks_is_skipped(self):
        interceptor = _interceptor(FakeRotationClient(rotated()))
        assert interceptor.install(object()) is False

    def test_missing_requests_library_is_skipped(self, monkeypatch):
        monkeypatch.setattr(session_hooks, "requests", None)
        session, _ = _session([])
        interceptor = _interceptor(FakeRotationClient(rotated()))

        assert interceptor.install(session) is False
        assert session.hooks["response"] == []

    def test_second_interceptor_does_not_add_a_hook(self, tiktok_env):
        session, adapter = _session([429, 429])
        first_rotation = FakeRotationClient(rotated())
        second_rotation = FakeRotationClient(rotated("other456"))
        first = _interceptor(first_rotation)
        second = _interceptor(second_rotation)

        assert first.install(session) is True
        assert second.install(session) is True
        assert second.is_installed(session) is True

        response = session.get(VIDEOS_URL, headers=AUTH)

        assert len(session.hooks["response"]) == 1
        assert response.status_code == 429
        assert len(adapter.sent) == 2
        assert first_rotation.calls == ["TIKTOK_API_KEY"]
        assert second_rotation.calls == []

    def test_retried_response_is_left_alone_by_later_hooks(self, tiktok_env):
        session, adapter = _session([429, 429])
        first_rotation = FakeRotationClient(rotated())
        second_rotation = FakeRotationClient(rotated("other456"))
        # Registered by hand, bypassing install()
        session.hooks["response"].extend(
            [
                _interceptor(first_rotation)._on_response,
                _interceptor(second_rotation)._on_response,
            ]
        )

        response = session.get(VIDEOS_URL, headers=AUTH)

        assert response.status_code == 429
        assert len(adapter.sent) == 2
        assert first_rotation.calls == ["TIKTOK_API_KEY"]
        assert second_rotation.calls == []
