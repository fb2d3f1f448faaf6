"""Test the rate-limited request executor"""

from unittest.mock import Mock

import pytest
import requests

from playlist_finder.core.exceptions import SpotifyError, SyncCancelled
from playlist_finder.spotify.executor import RequestExecutor

from conftest import spotify_exception


class TestRequestExecutor:
    """Test throttling absorption and error classification"""

    def test_success_returns_body(self, sleep):
        """A successful call returns its result after one attempt"""
        executor = RequestExecutor(sleep=sleep)
        call = Mock(return_value={"ok": True}, __name__="fetch")

        assert executor.execute(call, "a", limit=5) == {"ok": True}
        call.assert_called_once_with("a", limit=5)
        assert executor.attempts == 1
        assert sleep.calls == []

    @pytest.mark.parametrize("throttles", [1, 3])
    def test_throttling_is_retried_after_fixed_cooldown(self, sleep, throttles):
        """n throttled responses then success: n+1 attempts, n fixed cooldowns"""
        executor = RequestExecutor(cooldown_seconds=30, sleep=sleep)
        responses = [spotify_exception(429)] * throttles + ["body"]
        call = Mock(side_effect=responses, __name__="fetch")

        assert executor.execute(call, "pl1") == "body"
        assert call.call_count == throttles + 1
        assert executor.attempts == throttles + 1
        assert sleep.calls == [30] * throttles

    def test_unauthorized_is_not_retried(self, sleep):
        executor = RequestExecutor(sleep=sleep)
        call = Mock(side_effect=spotify_exception(401), __name__="fetch")

        with pytest.raises(SpotifyError) as exc_info:
            executor.execute(call)

        assert exc_info.value.is_auth_error
        assert exc_info.value.http_status == 401
        assert call.call_count == 1
        assert sleep.calls == []

    def test_not_found_is_classified(self, sleep):
        executor = RequestExecutor(sleep=sleep)
        call = Mock(side_effect=spotify_exception(404), __name__="play")

        with pytest.raises(SpotifyError) as exc_info:
            executor.execute(call)

        assert exc_info.value.is_not_found
        assert not exc_info.value.is_auth_error

    def test_other_status_carries_status_and_body(self, sleep):
        executor = RequestExecutor(sleep=sleep)
        call = Mock(side_effect=spotify_exception(500, "server exploded"), __name__="fetch")

        with pytest.raises(SpotifyError) as exc_info:
            executor.execute(call)

        error = exc_info.value
        assert error.http_status == 500
        assert error.details["body"] == "server exploded"
        assert not (error.is_auth_error or error.is_not_found or error.is_rate_limit)
        assert sleep.calls == []

    def test_transport_failure_becomes_spotify_error(self, sleep):
        executor = RequestExecutor(sleep=sleep)
        call = Mock(side_effect=requests.ConnectionError("connection reset"), __name__="fetch")

        with pytest.raises(SpotifyError) as exc_info:
            executor.execute(call)

        assert exc_info.value.http_status is None
        assert "connection reset" in exc_info.value.details["original_error"]

    def test_max_throttle_retries_exhausted(self, sleep):
        """With a retry cap, persistent throttling surfaces as is_rate_limit"""
        executor = RequestExecutor(cooldown_seconds=5, max_throttle_retries=2, sleep=sleep)
        call = Mock(side_effect=spotify_exception(429), __name__="fetch")

        with pytest.raises(SpotifyError) as exc_info:
            executor.execute(call)

        assert exc_info.value.is_rate_limit
        assert call.call_count == 3
        assert sleep.calls == [5, 5]

    def test_abort_after_cooldown_cancels_retry(self, sleep):
        """A superseded run stops after the cooldown instead of re-submitting"""
        executor = RequestExecutor(sleep=sleep, should_abort=lambda: True)
        call = Mock(side_effect=[spotify_exception(429), "body"], __name__="fetch")

        with pytest.raises(SyncCancelled):
            executor.execute(call)

        assert call.call_count == 1
        assert len(sleep.calls) == 1

    def test_attempts_reset_per_call(self, sleep):
        executor = RequestExecutor(sleep=sleep)
        executor.execute(Mock(side_effect=[spotify_exception(429), 1], __name__="a"))
        executor.execute(Mock(return_value=2, __name__="b"))

        assert executor.attempts == 1
