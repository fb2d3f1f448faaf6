"""
Rate-limited request execution for the Spotify Web API.

Every sync and playback call goes through RequestExecutor.execute(). The
executor absorbs throttling (HTTP 429) by waiting a fixed cooldown and
re-submitting the identical call, so callers only ever observe a slower
call. Everything else is translated into SpotifyError with classification
flags, which is the only exception type callers have to handle (plus
SyncCancelled when a superseded run is told to stop).

Error Handling:
    429:                  wait cooldown, retry the same call
    401:                  SpotifyError(is_auth_error=True), never retried
    404:                  SpotifyError(is_not_found=True)
    other status:         SpotifyError(http_status=<status>)
    transport failure:    SpotifyError(http_status=None)

The cooldown is fixed (30 seconds by default). Retry-After is not read
and there is no exponential backoff.
"""

import time
from typing import Any, Callable, TypeVar

import requests
from spotipy.exceptions import SpotifyException

from playlist_finder.core.config import DEFAULT_THROTTLE_COOLDOWN_SECONDS
from playlist_finder.core.exceptions import SpotifyError, SyncCancelled
from playlist_finder.core.logger import get_logger


logger = get_logger(__name__)

T = TypeVar("T")


class RequestExecutor:
    """
    Submit API calls, absorbing throttling and classifying failures.

    Attributes:
        cooldown_seconds: Fixed wait after a 429 before re-submitting.
        max_throttle_retries: Maximum number of 429 retries for one call.
            None means unlimited, matching how the library sync behaves.
        should_abort: Callable checked after each cooldown; returning True
            stops the retry loop with SyncCancelled.
        attempts: Number of submissions made by the most recent execute().

    Example:
        executor = RequestExecutor(cooldown_seconds=30)
        page = executor.execute(catalog.list_containers_page, None, 50)
    """

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_THROTTLE_COOLDOWN_SECONDS,
        max_throttle_retries: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
        should_abort: Callable[[], bool] | None = None
    ) -> None:
        self.cooldown_seconds = cooldown_seconds
        self.max_throttle_retries = max_throttle_retries
        self.should_abort = should_abort
        self._sleep = sleep
        self.attempts = 0

    def execute(self, call: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Run call(*args, **kwargs) under the throttling and error policy.

        Returns:
            Whatever the call returns on success.

        Raises:
            SpotifyError: For authorization, not-found, other HTTP and
                          transport failures, or exhausted throttle retries.
            SyncCancelled: If should_abort() turned True during a cooldown.
        """
        name = getattr(call, "__name__", repr(call))
        self.attempts = 0
        throttle_retries = 0

        while True:
            self.attempts += 1
            try:
                return call(*args, **kwargs)
            except SpotifyException as e:
                if e.http_status != 429:
                    raise self._classify(name, e) from e
            except requests.RequestException as e:
                raise self._classify(name, e) from e

            if self.max_throttle_retries is not None and throttle_retries >= self.max_throttle_retries:
                raise SpotifyError(
                    f"Rate limited by Spotify: gave up on {name} after {self.attempts} attempts",
                    details={"call": name, "attempts": self.attempts, "http_status": 429},
                    is_rate_limit=True,
                    http_status=429
                )

            throttle_retries += 1
            logger.warning(
                f"Rate limited by Spotify, waiting {self.cooldown_seconds:g}s "
                f"before retrying {name}"
            )
            self._sleep(self.cooldown_seconds)

            if self.should_abort is not None and self.should_abort():
                logger.debug(f"Dropping retry of {name}: run superseded")
                raise SyncCancelled(
                    "Sync run superseded while waiting out a rate limit",
                    details={"call": name}
                )

    def _classify(self, name: str, error: Exception) -> SpotifyError:
        """Translate a non-throttling failure into a SpotifyError."""
        if isinstance(error, SpotifyException):
            status = error.http_status
            details = {"call": name, "http_status": status, "body": error.msg}

            if status == 401:
                return SpotifyError(
                    f"Spotify rejected the access token during {name}",
                    details=details,
                    is_auth_error=True,
                    http_status=status
                )
            if status == 404:
                return SpotifyError(
                    f"Spotify resource not found during {name}",
                    details=details,
                    is_not_found=True,
                    http_status=status
                )
            return SpotifyError(
                f"Spotify request {name} failed with HTTP {status}: {error.msg}",
                details=details,
                http_status=status
            )

        return SpotifyError(
            f"Network error during {name}: {error}",
            details={"call": name, "original_error": str(error)}
        )
