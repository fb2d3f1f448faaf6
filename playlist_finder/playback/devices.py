"""Playback device selection."""

from playlist_finder.spotify.models import Device


def choose_device(devices: list[Device], preferred_id: str | None = None) -> Device | None:
    """
    Pick the device to play on.

    Preference order: the configured device if it is listed, then the
    currently active device, then the first listed device. None if no
    device is available.
    """
    if preferred_id:
        for device in devices:
            if device.id == preferred_id:
                return device

    for device in devices:
        if device.is_active:
            return device

    return devices[0] if devices else None
