"""Test play-and-verify sequencing and device choice"""

import pytest

from playlist_finder.core.exceptions import SpotifyError
from playlist_finder.playback.devices import choose_device
from playlist_finder.playback.sequencer import PlaybackOutcome, PlaybackSequencer
from playlist_finder.spotify.executor import RequestExecutor
from playlist_finder.spotify.models import Device

from conftest import spotify_exception


TARGET = "spotify:track:target"
CONTEXT = "spotify:playlist:pl1"


@pytest.fixture
def sequencer(catalog, sleep):
    executor = RequestExecutor(cooldown_seconds=30, sleep=sleep)
    return PlaybackSequencer(executor, catalog, settle_delay=1.0, retry_delay=2.0, sleep=sleep)


def play_forms(catalog) -> list[str]:
    """'position' or 'track' for each play command issued"""
    return [
        "track" if kwargs["track_uri"] else "position"
        for _, kwargs in catalog.calls_to("play")
    ]


class TestPlaybackSequencer:
    """Test the fallback ladder"""

    def test_confirmed_on_first_verify(self, sequencer, catalog, sleep):
        catalog.playing = [TARGET]

        outcome = sequencer.play("dev1", CONTEXT, TARGET, 4)

        assert outcome is PlaybackOutcome.CONFIRMED
        assert play_forms(catalog) == ["position"]
        args, kwargs = catalog.calls_to("play")[0]
        assert args == ("dev1", CONTEXT)
        assert kwargs["position"] == 4
        assert sleep.calls == [1.0]

    def test_confirmed_after_one_retry(self, sequencer, catalog, sleep):
        catalog.playing = ["spotify:track:other", TARGET]

        outcome = sequencer.play("dev1", CONTEXT, TARGET, 4)

        assert outcome is PlaybackOutcome.CONFIRMED
        assert play_forms(catalog) == ["position", "track"]
        assert sleep.calls == [1.0, 2.0, 1.0]

    def test_confirmed_on_last_rung(self, sequencer, catalog, sleep):
        catalog.playing = ["spotify:track:other", "spotify:track:other", TARGET]

        outcome = sequencer.play("dev1", CONTEXT, TARGET, 4)

        assert outcome is PlaybackOutcome.CONFIRMED
        assert play_forms(catalog) == ["position", "track", "track"]
        assert sleep.calls == [1.0, 2.0, 1.0, 2.0, 1.0]

    def test_exhausted_ladder_is_unconfirmed(self, sequencer, catalog):
        catalog.playing = ["spotify:track:other"] * 5

        outcome = sequencer.play("dev1", CONTEXT, TARGET, 4)

        assert outcome is PlaybackOutcome.UNCONFIRMED
        assert len(catalog.calls_to("current_playback")) == 3

    def test_nothing_playing_is_unconfirmed(self, sequencer, catalog):
        assert sequencer.play(None, CONTEXT, TARGET, 0) is PlaybackOutcome.UNCONFIRMED

    def test_unknown_track_falls_back_to_position(self, sequencer, catalog):
        """A device that does not know the track yet is asked by position again"""
        catalog.playing = ["spotify:track:other", TARGET]
        catalog.script["play"] = [None, spotify_exception(404)]

        outcome = sequencer.play("dev1", CONTEXT, TARGET, 4)

        assert outcome is PlaybackOutcome.CONFIRMED
        assert play_forms(catalog) == ["position", "track", "position"]

    def test_command_failure_is_unconfirmed(self, sequencer, catalog):
        catalog.script["play"].append(spotify_exception(500))

        assert sequencer.play("dev1", CONTEXT, TARGET, 4) is PlaybackOutcome.UNCONFIRMED

    def test_unauthorized_propagates(self, sequencer, catalog):
        catalog.script["play"].append(spotify_exception(401))

        with pytest.raises(SpotifyError) as exc_info:
            sequencer.play("dev1", CONTEXT, TARGET, 4)

        assert exc_info.value.is_auth_error


class TestChooseDevice:
    """Test playback device selection"""

    def test_preferred_device_wins(self):
        devices = [Device("a", "Phone", is_active=True), Device("b", "Speaker")]

        assert choose_device(devices, preferred_id="b").id == "b"

    def test_active_device_when_preferred_missing(self):
        devices = [Device("a", "Phone"), Device("b", "Speaker", is_active=True)]

        assert choose_device(devices, preferred_id="zzz").id == "b"

    def test_first_device_when_none_active(self):
        devices = [Device("a", "Phone"), Device("b", "Speaker")]

        assert choose_device(devices).id == "a"

    def test_no_devices(self):
        assert choose_device([]) is None
