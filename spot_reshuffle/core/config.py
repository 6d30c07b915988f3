"""
Configuration management for spot-reshuffle.

Reads config.yaml into frozen dataclasses, validating every value and
raising ConfigError on the first bad one.

Sections:
    - Spotify API credentials (client_id, client_secret, redirect_uri)
    - Token cache location and market used for track availability
    - Default sources and target playlist name (CLI flags override them)
    - Network tuning: retry budget, backoff delays, request throttling
    - Optional directory for log files

Configuration File Location:
    By default config.yaml is looked up in the current working directory.
    The file is optional: without it, credentials are read from the
    SPOTIPY_CLIENT_ID / SPOTIPY_CLIENT_SECRET / SPOTIPY_REDIRECT_URI
    environment variables and everything else uses defaults.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"
      redirect_uri: "http://127.0.0.1:8888/callback"
      cache_path: "~/.cache/spot-reshuffle/token.json"
      market: "from_token"

    reshuffle:
      source_playlists:
        - "37i9dQZF1DXcBWIGoYBM5M"
        - "https://open.spotify.com/playlist/37i9dQZF1DX0XUsuxWHRQd"
      include_liked: true
      target_playlist_name: "Reshuffle"

    network:
      max_attempts: 5
      base_delay: 1.0
      max_delay: 30.0
      max_retry_after: 60.0
      max_concurrent_requests: 4
      requests_per_second: 10
      timeout: 30.0

    logging:
      directory: "~/.cache/spot-reshuffle/logs"
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from spot_reshuffle.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_MARKET = "from_token"

# Environment variables read by spotipy itself
ENV_CLIENT_ID = "SPOTIPY_CLIENT_ID"
ENV_CLIENT_SECRET = "SPOTIPY_CLIENT_SECRET"
ENV_REDIRECT_URI = "SPOTIPY_REDIRECT_URI"


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify application credentials and authorization settings.

    Client ID and secret come from an app registered at
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
        redirect_uri: OAuth redirect URI registered for the application.
        cache_path: Where spotipy persists the OAuth token.
                    None lets spotipy use its default (.cache in CWD).
        market: Market sent with track listings so that Spotify reports
                region-blocked tracks as unplayable. "from_token" uses the
                market of the authenticated user.
    """
    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI
    cache_path: Path | None = None
    market: str | None = DEFAULT_MARKET


@dataclass(frozen=True)
class ReshuffleConfig:
    """
    Default inputs of the reshuffle pipeline.

    Every field can be overridden from the command line.

    Attributes:
        source_playlists: Ordered playlist IDs, URIs or URLs.
        include_liked: Whether Liked Songs are added after the playlists.
        target_playlist_name: Name of the playlist to create or refresh.
    """
    source_playlists: tuple[str, ...] = ()
    include_liked: bool = False
    target_playlist_name: str | None = None


@dataclass(frozen=True)
class NetworkConfig:
    """
    Network behavior configuration.

    Attributes:
        max_attempts: Attempts per remote call (one page, one batch)
                      before the call fails permanently. Default: 5.
        base_delay: First backoff delay in seconds, doubled per attempt.
        max_delay: Cap of the exponential backoff delay in seconds.
        max_retry_after: Longest Retry-After hint waited for, in seconds;
            longer hints fail the request.
        max_concurrent_requests: Outstanding requests at any time.
        requests_per_second: Request rate enforced by the throttler.
        timeout: Total timeout of a single HTTP request in seconds.
    """
    max_attempts: int = 5
    base_delay: float = 1.0
    max_delay: float = 30.0
    max_retry_after: float = 60.0
    max_concurrent_requests: int = 4
    requests_per_second: int = 10
    timeout: float = 30.0


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging configuration.

    Attributes:
        directory: Directory for log files. None logs to the console only.
    """
    directory: Path | None = None


@dataclass(frozen=True)
class Config:
    """
    All settings of one run, one attribute per config.yaml section.

    Created by load_config() and treated as immutable (frozen dataclass).

    Example:
        config = load_config()
        print(f"Target: {config.reshuffle.target_playlist_name}")
        print(f"Retrying each call up to {config.network.max_attempts} times")
    """
    spotify: SpotifyConfig
    reshuffle: ReshuffleConfig = field(default_factory=ReshuffleConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None
) -> Config:
    """
    Load and validate configuration from config.yaml and the environment.

    Args:
        config_path: Optional explicit path to config file.
                     If None, config.yaml in the current working directory
                     is used when it exists.
        environ: Environment used for credential fallback.
                 Defaults to os.environ.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit config file is missing, the YAML is
                     invalid, a value has the wrong type, or no Spotify
                     credentials can be found.

    Behavior:
        1. Locate config file (explicit path or optional CWD/config.yaml)
        2. Read and parse YAML content
        3. Validate every section present
        4. Fill missing credentials from the environment
        5. Create and return frozen Config object
    """
    if environ is None:
        environ = os.environ

    raw_config: dict[str, Any] = {}

    if config_path is None:
        default_path = Path.cwd() / CONFIG_FILENAME
        if default_path.exists():
            raw_config = _read_config_file(default_path)
    else:
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        raw_config = _read_config_file(config_path)

    for section in ("spotify", "reshuffle", "network", "logging"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    return Config(
        spotify=_parse_spotify_config(raw_config.get("spotify") or {}, environ),
        reshuffle=_parse_reshuffle_config(raw_config.get("reshuffle") or {}),
        network=_parse_network_config(raw_config.get("network") or {}),
        logging=_parse_logging_config(raw_config.get("logging") or {}),
    )


def _read_config_file(config_path: Path) -> dict[str, Any]:
    """
    Read and parse a YAML configuration file.

    An empty file is accepted and yields an empty configuration.

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML,
                     or does not contain a dictionary.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
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

    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _parse_spotify_config(
    spotify_section: dict[str, Any],
    environ: Mapping[str, str]
) -> SpotifyConfig:
    """
    Parse and validate the Spotify configuration section.

    Credentials missing from the file are taken from the environment.

    Raises:
        ConfigError: If client_id or client_secret cannot be found,
                     or a field has the wrong type.
    """
    client_id = spotify_section.get("client_id") or environ.get(ENV_CLIENT_ID, "")
    client_secret = spotify_section.get("client_secret") or environ.get(ENV_CLIENT_SECRET, "")
    redirect_uri = (
        spotify_section.get("redirect_uri")
        or environ.get(ENV_REDIRECT_URI)
        or DEFAULT_REDIRECT_URI
    )

    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            f"'spotify.client_id' must be set in config.yaml or {ENV_CLIENT_ID}",
            details={"field": "spotify.client_id"}
        )

    if not isinstance(client_secret, str) or not client_secret.strip():
        raise ConfigError(
            f"'spotify.client_secret' must be set in config.yaml or {ENV_CLIENT_SECRET}",
            details={"field": "spotify.client_secret"}
        )

    if not isinstance(redirect_uri, str):
        raise ConfigError(
            "'spotify.redirect_uri' must be a string",
            details={"field": "spotify.redirect_uri"}
        )

    cache_path = _optional_path(spotify_section.get("cache_path"), "spotify.cache_path")

    market = spotify_section.get("market", DEFAULT_MARKET)
    if market is not None and (not isinstance(market, str) or not market.strip()):
        raise ConfigError(
            "'spotify.market' must be a country code, 'from_token' or null",
            details={"field": "spotify.market", "value": market}
        )

    return SpotifyConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip(),
        redirect_uri=redirect_uri.strip(),
        cache_path=cache_path,
        market=market.strip() if market else None,
    )


def _parse_reshuffle_config(reshuffle_section: dict[str, Any]) -> ReshuffleConfig:
    """
    Parse the default pipeline inputs.

    Raises:
        ConfigError: If source_playlists is not a list of strings,
                     include_liked is not a boolean, or the target name
                     is not a string.
    """
    sources = reshuffle_section.get("source_playlists") or []
    if not isinstance(sources, list) or not all(isinstance(s, str) for s in sources):
        raise ConfigError(
            "'reshuffle.source_playlists' must be a list of playlist IDs or URLs",
            details={"field": "reshuffle.source_playlists"}
        )

    include_liked = reshuffle_section.get("include_liked", False)
    if not isinstance(include_liked, bool):
        raise ConfigError(
            "'reshuffle.include_liked' must be true or false",
            details={"field": "reshuffle.include_liked", "value": include_liked}
        )

    target = reshuffle_section.get("target_playlist_name")
    if target is not None and not isinstance(target, str):
        raise ConfigError(
            "'reshuffle.target_playlist_name' must be a string",
            details={"field": "reshuffle.target_playlist_name"}
        )

    return ReshuffleConfig(
        source_playlists=tuple(s.strip() for s in sources if s.strip()),
        include_liked=include_liked,
        target_playlist_name=target,
    )


def _parse_network_config(network_section: dict[str, Any]) -> NetworkConfig:
    """
    Parse and validate the network configuration section.

    Applies defaults for every field not specified.

    Raises:
        ConfigError: If a count is not a positive integer or a delay
                     is not a non-negative number.
    """
    defaults = NetworkConfig()
    values: dict[str, Any] = {}

    for name in ("max_attempts", "max_concurrent_requests", "requests_per_second"):
        raw = network_section.get(name)
        if raw is None:
            continue
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
            raise ConfigError(
                f"'network.{name}' must be a positive integer",
                details={"field": f"network.{name}", "value": raw}
            )
        values[name] = raw

    for name in ("base_delay", "max_delay", "max_retry_after", "timeout"):
        raw = network_section.get(name)
        if raw is None:
            continue
        if isinstance(raw, bool) or not isinstance(raw, (int, float)) or raw < 0:
            raise ConfigError(
                f"'network.{name}' must be a non-negative number",
                details={"field": f"network.{name}", "value": raw}
            )
        values[name] = float(raw)

    return NetworkConfig(**{**defaults.__dict__, **values})


def _parse_logging_config(logging_section: dict[str, Any]) -> LoggingConfig:
    """Parse the logging configuration section."""
    return LoggingConfig(
        directory=_optional_path(logging_section.get("directory"), "logging.directory")
    )


def _optional_path(raw: Any, field_name: str) -> Path | None:
    """
    Expand an optional path value (~ is expanded to home directory).

    Raises:
        ConfigError: If the value is neither null nor a non-empty string.
    """
    if raw is None:
        return None
    if not isinstance(raw, str) or not raw.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string path or null",
            details={"field": field_name}
        )
    return Path(raw.strip()).expanduser().resolve()
