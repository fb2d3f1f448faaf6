"""
Configuration management for playlist-finder.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Spotify API credentials (client_id, client_secret, redirect_uri)
    - Output directory for logs, the snapshot cache and the token cache
    - Sync tuning (throttling cooldown, listing page size)
    - Snapshot cache quota
    - Playback device preference and verification delays

Configuration File Location:
    By default config.yaml is read from the current working directory.
    The CLI accepts --config to point elsewhere.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"

    output:
      directory: "~/.playlist-finder"

    sync:
      throttle_cooldown_seconds: 30
      page_size: 50

    cache:
      quota_bytes: 5242880

    playback:
      device_id: null
      settle_delay_seconds: 1.0
      retry_delay_seconds: 2.0
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from playlist_finder.core.exceptions import ConfigError


# Default configuration file name (in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_THROTTLE_COOLDOWN_SECONDS = 30.0
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 50  # Spotify's limit for /me/playlists
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024
DEFAULT_SETTLE_DELAY_SECONDS = 1.0
DEFAULT_RETRY_DELAY_SECONDS = 2.0


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify API credentials configuration.

    These credentials are obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
        redirect_uri: OAuth redirect URI registered for the application.
    """
    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Absolute path holding logs/, cache.db and the OAuth
                   token cache. ~ is expanded.
    """
    directory: Path

    @property
    def cache_path(self) -> Path:
        return self.directory / "cache.db"

    @property
    def token_cache_path(self) -> Path:
        return self.directory / ".spotify-token"


@dataclass(frozen=True)
class SyncConfig:
    """
    Library sync behavior.

    Attributes:
        throttle_cooldown_seconds: Fixed wait after a 429 before the same
            request is re-submitted. Spotify's Retry-After header is not
            relied upon.
        page_size: Number of playlists requested per listing page (1-50).
    """
    throttle_cooldown_seconds: float = DEFAULT_THROTTLE_COOLDOWN_SECONDS
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class CacheConfig:
    """
    Snapshot cache configuration.

    Attributes:
        quota_bytes: Hard byte quota of the persistent snapshot store.
    """
    quota_bytes: int = DEFAULT_QUOTA_BYTES


@dataclass(frozen=True)
class PlaybackConfig:
    """
    Playback command configuration.

    Attributes:
        device_id: Preferred device. None means "the active device".
        settle_delay_seconds: Wait after a play command before verifying.
        retry_delay_seconds: Wait before issuing the play-by-track form.
    """
    device_id: str | None = None
    settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Cache at: {config.output.cache_path}")
    """
    spotify: SpotifyConfig
    output: OutputConfig
    sync: SyncConfig = SyncConfig()
    cache: CacheConfig = CacheConfig()
    playback: PlaybackConfig = PlaybackConfig()


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    _validate_config(raw_config)

    return Config(
        spotify=_parse_spotify_config(raw_config["spotify"]),
        output=_parse_output_config(raw_config["output"]),
        sync=_parse_sync_config(_optional_section(raw_config, "sync")),
        cache=_parse_cache_config(_optional_section(raw_config, "cache")),
        playback=_parse_playback_config(_optional_section(raw_config, "playback")),
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """Check that the required sections exist and are dictionaries."""
    for section in ("spotify", "output"):
        if section not in raw_config:
            raise ConfigError(
                f"Missing required section: '{section}'",
                details={"missing_section": section}
            )

        if not isinstance(raw_config[section], dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _optional_section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    """
    Parse and validate the Spotify configuration section.

    Raises:
        ConfigError: If client_id or client_secret is missing or empty.
    """
    client_id = spotify_section.get("client_id", "")
    client_secret = spotify_section.get("client_secret", "")
    redirect_uri = spotify_section.get("redirect_uri", DEFAULT_REDIRECT_URI)

    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            "'spotify.client_id' must be a non-empty string",
            details={"field": "spotify.client_id"}
        )

    if not isinstance(client_secret, str) or not client_secret.strip():
        raise ConfigError(
            "'spotify.client_secret' must be a non-empty string",
            details={"field": "spotify.client_secret"}
        )

    if not isinstance(redirect_uri, str) or not redirect_uri.strip():
        raise ConfigError(
            "'spotify.redirect_uri' must be a non-empty string",
            details={"field": "spotify.redirect_uri"}
        )

    return SpotifyConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip(),
        redirect_uri=redirect_uri.strip()
    )


def _parse_output_config(output_section: dict[str, Any]) -> OutputConfig:
    """
    Parse and validate the output configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory (the CLI does that at startup).
    """
    directory = output_section.get("directory", "")

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'output.directory' must be a non-empty string",
            details={"field": "output.directory"}
        )

    return OutputConfig(directory=Path(directory.strip()).expanduser().resolve())


def _parse_sync_config(sync_section: dict[str, Any]) -> SyncConfig:
    cooldown = _non_negative_number(
        sync_section, "throttle_cooldown_seconds", "sync", DEFAULT_THROTTLE_COOLDOWN_SECONDS
    )

    page_size = sync_section.get("page_size", DEFAULT_PAGE_SIZE)
    # bool is an int subclass; reject it explicitly
    if (
        not isinstance(page_size, int)
        or isinstance(page_size, bool)
        or not 1 <= page_size <= MAX_PAGE_SIZE
    ):
        raise ConfigError(
            f"'sync.page_size' must be an integer between 1 and {MAX_PAGE_SIZE}",
            details={"field": "sync.page_size", "value": page_size}
        )

    return SyncConfig(throttle_cooldown_seconds=cooldown, page_size=page_size)


def _parse_cache_config(cache_section: dict[str, Any]) -> CacheConfig:
    quota = cache_section.get("quota_bytes", DEFAULT_QUOTA_BYTES)
    if not isinstance(quota, int) or isinstance(quota, bool) or quota < 1:
        raise ConfigError(
            "'cache.quota_bytes' must be a positive integer",
            details={"field": "cache.quota_bytes", "value": quota}
        )
    return CacheConfig(quota_bytes=quota)


def _parse_playback_config(playback_section: dict[str, Any]) -> PlaybackConfig:
    device_id = playback_section.get("device_id")
    if device_id is not None and (not isinstance(device_id, str) or not device_id.strip()):
        raise ConfigError(
            "'playback.device_id' must be a non-empty string or null",
            details={"field": "playback.device_id"}
        )

    return PlaybackConfig(
        device_id=device_id.strip() if device_id else None,
        settle_delay_seconds=_non_negative_number(
            playback_section, "settle_delay_seconds", "playback", DEFAULT_SETTLE_DELAY_SECONDS
        ),
        retry_delay_seconds=_non_negative_number(
            playback_section, "retry_delay_seconds", "playback", DEFAULT_RETRY_DELAY_SECONDS
        ),
    )


def _non_negative_number(
    section: dict[str, Any],
    key: str,
    section_name: str,
    default: float
) -> float:
    value = section.get(key, default)
    if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
        raise ConfigError(
            f"'{section_name}.{key}' must be a non-negative number",
            details={"field": f"{section_name}.{key}", "value": value}
        )
    return float(value)
