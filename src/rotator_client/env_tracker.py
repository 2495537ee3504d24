# src/rotator_client/env_tracker.py

import logging
import os
import threading
from collections import OrderedDict
from typing import Any, Callable, List, Mapping, Optional
from urllib.parse import urlsplit

from .provider_hosts import (
    NON_PROVIDER_TOKEN_SEGMENTS,
    PROVIDER_HOST_MAP,
    PROVIDER_TOKEN_PREFIX,
    TOKEN_PREFIX_MAP,
)
from .types import TrackedAssociation

lib_logger = logging.getLogger("rotator_client")

DEFAULT_MAX_HOSTS = 1024

# (hostname, credential) -> secret name, or None when the strategy has no opinion
SecretMatcher = Callable[[str, str], Optional[str]]


def normalized_host(url: Any) -> Optional[str]:
    """
    Returns the lower-cased host of a URL, with the port appended only when
    the URL names one explicitly. None if the URL has no host.
    """
    try:
        parts = urlsplit(str(url))
        hostname = parts.hostname
        port = parts.port
    except ValueError:
        return None
    if not hostname:
        return None
    if ":" in hostname:
        hostname = f"[{hostname}]"
    return f"{hostname}:{port}" if port is not None else hostname


def _hostname_of(host_key: str) -> str:
    if host_key.startswith("["):
        return host_key[1 : host_key.index("]")]
    return host_key.split(":", 1)[0]


def _authorization_value(headers: Any) -> Optional[str]:
    """
    Finds the Authorization header value in plain dicts, httpx.Headers,
    requests' case-insensitive dicts or a list of (name, value) pairs.
    """
    if not headers:
        return None

    items = headers.items() if hasattr(headers, "items") else headers
    for name, value in items:
        if isinstance(name, bytes):
            name = name.decode("latin-1")
        if name.lower() != "authorization" or value is None:
            continue
        if isinstance(value, bytes):
            value = value.decode("latin-1")
        return str(value).strip()
    return None


def extract_credential(headers: Any) -> Optional[str]:
    """Returns the Authorization credential without its scheme prefix (e.g. "Bearer ")."""
    value = _authorization_value(headers)
    if not value:
        return None
    scheme, _, rest = value.partition(" ")
    return rest.strip() or scheme


def authorization_scheme(headers: Any) -> str:
    """Returns the scheme of the Authorization header, "Bearer" if it has none."""
    value = _authorization_value(headers)
    if value:
        scheme, _, rest = value.partition(" ")
        if rest.strip():
            return scheme
    return "Bearer"


class ExactValueMatcher:
    """Finds the env var whose current value equals the credential."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ

    def __call__(self, hostname: str, credential: str) -> Optional[str]:
        # Read on every lookup so values rotated into the environment stay visible
        environ = os.environ if self._environ is None else self._environ
        for name, value in list(environ.items()):
            if value and value == credential:
                return name
        return None


class HostSignatureMatcher:
    """Guesses the secret from a table of known provider hosts."""

    def __init__(self, host_map: Optional[Mapping[str, str]] = None):
        self._host_map = PROVIDER_HOST_MAP if host_map is None else host_map

    def __call__(self, hostname: str, credential: str) -> Optional[str]:
        for signature, secret_name in self._host_map.items():
            if hostname == signature or hostname.endswith("." + signature):
                return secret_name
        return None


class TokenPrefixMatcher:
    """Guesses the secret from vendor token prefixes and the sk_<provider>_ convention."""

    def __init__(self, prefix_map: Optional[Mapping[str, str]] = None):
        self._prefix_map = TOKEN_PREFIX_MAP if prefix_map is None else prefix_map

    def __call__(self, hostname: str, credential: str) -> Optional[str]:
        for prefix, secret_name in self._prefix_map.items():
            if credential.startswith(prefix):
                return secret_name

        if credential.startswith(PROVIDER_TOKEN_PREFIX):
            segment = credential[len(PROVIDER_TOKEN_PREFIX):].split("_", 1)
            provider = segment[0]
            if len(segment) == 2 and provider.isalnum() and provider.lower() not in NON_PROVIDER_TOKEN_SEGMENTS:
                return f"{provider.upper()}_API_KEY"
        return None


def default_matchers() -> List[SecretMatcher]:
    return [ExactValueMatcher(), HostSignatureMatcher(), TokenPrefixMatcher()]


class EnvTracker:
    """
    Remembers which environment variable supplied the credential for each
    destination host, so a later 429 from that host can be traced back to
    the secret that needs rotating.
    """

    def __init__(
        self,
        matchers: Optional[List[SecretMatcher]] = None,
        max_hosts: Optional[int] = DEFAULT_MAX_HOSTS,
    ):
        self._matchers = default_matchers() if matchers is None else list(matchers)
        self._max_hosts = max_hosts
        self._associations: "OrderedDict[str, TrackedAssociation]" = OrderedDict()
        self._lock = threading.Lock()

    def _resolve(self, hostname: str, credential: str) -> Optional[str]:
        for matcher in self._matchers:
            secret_name = matcher(hostname, credential)
            if secret_name:
                return secret_name
        return None

    def track_request(self, url: Any, headers: Any) -> None:
        """
        Records host -> secret name for an outbound request whose credential
        can be attributed to an environment variable. Never raises.
        """
        try:
            host_key = normalized_host(url)
            if host_key is None:
                return
            credential = extract_credential(headers)
            if not credential:
                return

            secret_name = self._resolve(_hostname_of(host_key), credential)
            if secret_name is None:
                return

            association = TrackedAssociation(
                host_key=host_key,
                secret_name=secret_name,
                last_observed_credential=credential,
            )
            with self._lock:
                self._associations[host_key] = association
                self._associations.move_to_end(host_key)
                if self._max_hosts is not None:
                    while len(self._associations) > self._max_hosts:
                        self._associations.popitem(last=False)
        except Exception as e:
            lib_logger.debug(f"Failed to track request to {url}: {e}")

    def get_association(self, url: Any) -> Optional[TrackedAssociation]:
        host_key = normalized_host(url)
        if host_key is None:
            return None
        with self._lock:
            return self._associations.get(host_key)

    def get_secret_name(self, url: Any) -> Optional[str]:
        association = self.get_association(url)
        return association.secret_name if association else None

    def clear(self) -> None:
        with self._lock:
            self._associations.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._associations)


# Global singleton instance
env_tracker = EnvTracker()


def get_env_tracker() -> EnvTracker:
    """
    Get the global environment tracker instance.

    Returns:
        EnvTracker instance
    """
    return env_tracker
