"""
Play-and-verify command sequence.

Starting a playlist at a given track is racy on Spotify Connect devices:
right after a playlist changes, a device may still hold the old version
and start at the wrong position, or reject a track it does not know yet.
The sequencer issues the command, waits, checks what is actually playing
and climbs a short fixed ladder of fallbacks:

    1. play at position N         -> wait settle_delay -> verify
    2. wait retry_delay, play at track uri
       (not found -> play at position N once more)
                                  -> wait settle_delay -> verify
    3. step 2 once more

The first successful verification ends the sequence with CONFIRMED. An
exhausted ladder ends with UNCONFIRMED; nothing is raised, since telling
the user is the caller's job. Only a rejected credential propagates.
"""

import time
from enum import Enum
from typing import Callable

from playlist_finder.core.config import (
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_SETTLE_DELAY_SECONDS,
)
from playlist_finder.core.exceptions import SpotifyError
from playlist_finder.core.logger import get_logger
from playlist_finder.spotify.client import SpotifyCatalog
from playlist_finder.spotify.executor import RequestExecutor


logger = get_logger(__name__)

IDENTITY_ATTEMPTS = 2


class PlaybackOutcome(Enum):
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"


class PlaybackSequencer:
    """
    Issues play commands and verifies them against the player state.

    Runs independently of the sync pipeline and may overlap with it.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        catalog: SpotifyCatalog,
        settle_delay: float = DEFAULT_SETTLE_DELAY_SECONDS,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        self._executor = executor
        self._catalog = catalog
        self.settle_delay = settle_delay
        self.retry_delay = retry_delay
        self._sleep = sleep

    def play(
        self,
        device_id: str | None,
        context_uri: str,
        track_uri: str,
        position: int
    ) -> PlaybackOutcome:
        """
        Play `track_uri`, which sits at `position` in playlist `context_uri`.

        Raises:
            SpotifyError: Only if the credential was rejected (is_auth_error).
        """
        try:
            self._play_by_position(device_id, context_uri, position)
            if self._settle_and_verify(track_uri):
                return PlaybackOutcome.CONFIRMED

            for attempt in range(1, IDENTITY_ATTEMPTS + 1):
                self._sleep(self.retry_delay)
                logger.debug(f"Playback not confirmed, trying track uri (attempt {attempt})")
                try:
                    self._executor.execute(
                        self._catalog.play, device_id, context_uri, track_uri=track_uri
                    )
                except SpotifyError as e:
                    if not e.is_not_found:
                        raise
                    logger.debug("Device does not know the track yet, retrying by position")
                    self._play_by_position(device_id, context_uri, position)

                if self._settle_and_verify(track_uri):
                    return PlaybackOutcome.CONFIRMED

        except SpotifyError as e:
            if e.is_auth_error:
                raise
            logger.warning(f"Playback command failed: {e}")
            return PlaybackOutcome.UNCONFIRMED

        logger.warning(f"Could not confirm playback of {track_uri}")
        return PlaybackOutcome.UNCONFIRMED

    def _play_by_position(self, device_id: str | None, context_uri: str, position: int) -> None:
        self._executor.execute(self._catalog.play, device_id, context_uri, position=position)

    def _settle_and_verify(self, track_uri: str) -> bool:
        self._sleep(self.settle_delay)
        state = self._executor.execute(self._catalog.current_playback)
        return state.track_uri == track_uri
