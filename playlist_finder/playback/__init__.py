"""
Playback control for playlist-finder.

    - PlaybackSequencer: play a track within a playlist and confirm it started
    - choose_device: pick the output device
"""

from playlist_finder.playback.devices import choose_device
from playlist_finder.playback.sequencer import PlaybackOutcome, PlaybackSequencer

__all__ = [
    "PlaybackSequencer",
    "PlaybackOutcome",
    "choose_device",
]
