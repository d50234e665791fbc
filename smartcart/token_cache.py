"""Access-token cache shared by concurrent lookups against one provider."""

import logging
import threading
import time
from collections.abc import Callable

from .errors import AuthenticationError

logger = logging.getLogger(__name__)


class TokenCache:
    """Caches one bearer token until it expires.

    When several threads find the token expired at the same time, only one of
    them calls ``fetch_token``; the rest wait and reuse the new token. An
    AuthenticationError from ``fetch_token`` is remembered and re-raised to
    every later caller without contacting the auth endpoint again, until
    reset() is called.
    """

    def __init__(
        self,
        fetch_token: Callable[[], str],
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._fetch_token = fetch_token
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at = 0.0
        self._failure: AuthenticationError | None = None

    def _valid_token(self) -> str | None:
        if self._token is not None and self._clock() < self._expires_at:
            return self._token
        return None

    def get(self) -> str:
        """Return a valid token, refreshing it at most once per expiry."""
        token = self._valid_token()
        if token is not None:
            return token

        with self._lock:
            if self._failure is not None:
                raise self._failure

            # Another thread may have refreshed while we waited for the lock
            token = self._valid_token()
            if token is not None:
                return token

            try:
                token = self._fetch_token()
            except AuthenticationError as e:
                logger.error("Token refresh failed: %s", e)
                self._failure = e
                raise

            self._token = token
            self._expires_at = self._clock() + self._ttl
            return token

    def invalidate(self) -> None:
        """Drop the cached token so the next get() refreshes it."""
        with self._lock:
            self._token = None
            self._expires_at = 0.0

    def reset(self) -> None:
        """Forget both the token and any remembered auth failure."""
        with self._lock:
            self._token = None
            self._expires_at = 0.0
            self._failure = None

    @property
    def failed(self) -> bool:
        return self._failure is not None
