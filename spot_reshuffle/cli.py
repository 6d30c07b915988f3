"""
Command-line interface for spot-reshuffle.

This module implements the CLI using Click, combining Spotify playlists
and/or Liked Songs into one shuffled playlist.
rich-click is used for the output colors.

Usage:
    # Combine two playlists into "Shuffled Mix"
    spot-reshuffle -s 37i9dQZF1DXcBWIGoYBM5M,37i9dQZF1DX0XUsuxWHRQd -t "Shuffled Mix"

    # Playlists plus Liked Songs, with log files
    spot-reshuffle -s "https://open.spotify.com/playlist/..." --include-liked \\
        -t "Everything" --log-dir ~/.cache/spot-reshuffle/logs

    # Liked Songs only, token cached in a custom location
    spot-reshuffle --include-liked -t "Liked Shuffle" --cache-path ~/.spotify_token

Configuration:
    Credentials come from config.yaml (current directory or --config) or
    from the SPOTIPY_CLIENT_ID / SPOTIPY_CLIENT_SECRET environment
    variables. Default sources and target name can be set in config.yaml
    under 'reshuffle:'; command-line flags take precedence.

Exit Codes:
    0    Success (also when no valid track was found)
    1    Configuration error or unexpected error
    2    Authentication failed
    3    A source could not be read
    4    The target playlist was only partially updated
    130  Interrupted by user
"""

import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "cli": [
        {
            "name": "Sources and Target",
            "options": ["--source-playlists", "--include-liked", "--target-name"],
        },
        {
            "name": "Files",
            "options": ["--config", "--cache-path", "--log-dir"],
        },
        {
            "name": "Output",
            "options": ["--no-progress", "--verbose"],
        },
        {
            "name": "Info",
            "options": ["--version", "--help"],
        },
    ],
}

from spot_reshuffle import __version__
from spot_reshuffle.core import (
    AuthError,
    CollectionFailed,
    Config,
    ConfigError,
    ReshuffleError,
    SourceUnavailable,
    SyncFailure,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_reshuffle.core.retry import RetryPolicy
from spot_reshuffle.pipeline import ReshuffleRequest, RunSummary, run_reshuffle
from spot_reshuffle.spotify import SpotifyTokenProvider, SpotifyWebApi

logger = get_logger(__name__)


@click.command()
@click.option(
    "-s", "--source-playlists",
    "source_playlists",
    type=str,
    multiple=True,
    metavar="<id[,id...]>",
    help="Source playlist IDs or URLs, comma-separated (repeatable)"
)
@click.option(
    "--include-liked",
    is_flag=True,
    help="Add Liked Songs after the source playlists"
)
@click.option(
    "-t", "--target-name",
    type=str,
    default=None,
    metavar="<name>",
    help="Name of the playlist to create or replace"
)
@click.option(
    "--config", "config_path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml if present)"
)
@click.option(
    "--cache-path",
    type=click.Path(path_type=Path),
    default=None,
    metavar="<path>",
    help="Where the Spotify token is cached"
)
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    metavar="<dir>",
    help="Write log files to this directory"
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Hide progress bars"
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Show debug messages, including every skipped track"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(
    ctx: click.Context,
    source_playlists: tuple[str, ...],
    include_liked: bool,
    target_name: Optional[str],
    config_path: Optional[Path],
    cache_path: Optional[Path],
    log_dir: Optional[Path],
    no_progress: bool,
    verbose: bool,
    version: bool
) -> None:
    """
    spot-reshuffle: Combine Spotify playlists into one shuffled playlist.

    Collects every track of the source playlists (and optionally your
    Liked Songs), removes duplicates and unavailable tracks, shuffles them
    and writes the result to a playlist of yours, replacing its contents.

    \b
    EXAMPLES:
        spot-reshuffle -s ID1,ID2 -t "Shuffled Mix"
        spot-reshuffle -s ID1 --include-liked -t "Everything"
        spot-reshuffle --include-liked -t "Liked Shuffle"
    """
    if version:
        click.echo(f"spot-reshuffle {__version__}")
        ctx.exit(0)

    playlists = [
        value.strip()
        for option in source_playlists
        for value in option.split(",")
        if value.strip()
    ]

    if target_name is not None and not target_name.strip():
        raise click.UsageError("--target-name must not be blank")

    _run_reshuffle({
        "playlists": playlists,
        "include_liked": include_liked,
        "target_name": target_name,
        "config_path": config_path,
        "cache_path": cache_path,
        "log_dir": log_dir,
        "show_progress": not no_progress,
        "verbose": verbose,
    })


def _run_reshuffle(options: dict) -> None:
    """
    Execute the reshuffle based on CLI options.

    Steps: load config.yaml and apply the CLI overrides, set up logging,
    build and validate the request, run the pipeline and log the summary.
    Every failure is logged and mapped to its exit code here.

    Args:
        options: Dictionary with CLI options.

    Raises:
        SystemExit: On fatal errors (with appropriate exit code).
    """
    try:
        config = _load_configuration(options["config_path"], options["cache_path"])

        setup_logging(options["log_dir"] or config.logging.directory, options["verbose"])
        logger.info("spot-reshuffle starting")

        request = ReshuffleRequest.from_options(
            playlists=options["playlists"] or config.reshuffle.source_playlists,
            include_liked=options["include_liked"] or config.reshuffle.include_liked,
            target_name=options["target_name"] or config.reshuffle.target_playlist_name,
        )
        logger.info(
            f"Combining {len(request.sources)} sources into '{request.target_name}'"
        )

        summary = asyncio.run(_execute(config, request, options["show_progress"]))
        summary.log(logger)

        logger.info("spot-reshuffle completed successfully")

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except AuthError as e:
        click.echo(f"Authentication error: {e.message}", err=True)
        click.echo("Check your client_id, client_secret and redirect URI", err=True)
        logger.error(f"Authentication error: {e.message}", exc_info=True)
        sys.exit(2)

    except (SourceUnavailable, CollectionFailed) as e:
        click.echo(f"Source error: {e.message}", err=True)
        click.echo("The target playlist was not modified", err=True)
        logger.error(f"Source error: {e.message}", exc_info=True)
        sys.exit(3)

    except SyncFailure as e:
        click.echo(f"Sync error: {e.message}", err=True)
        click.echo("Run the command again to rebuild the playlist", err=True)
        logger.error(f"Sync error: {e.message}", exc_info=True)
        sys.exit(4)

    except ReshuffleError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        sys.exit(1)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        shutdown_logging()


def _load_configuration(config_path: Path | None, cache_path: Path | None) -> Config:
    """
    Load configuration and apply the --cache-path override.

    Raises:
        ConfigError: If configuration is invalid or credentials are missing.
    """
    config = load_config(config_path)
    if cache_path is not None:
        spotify = replace(config.spotify, cache_path=cache_path.expanduser().resolve())
        config = replace(config, spotify=spotify)
    return config


async def _execute(config: Config, request: ReshuffleRequest, show_progress: bool) -> RunSummary:
    """
    Authenticate, then run the pipeline with a client built from config.

    The token is obtained before any request so that the interactive
    login (first run) happens before collection starts.
    """
    tokens = SpotifyTokenProvider.from_config(config.spotify)
    await tokens.get_token()

    async with SpotifyWebApi.from_config(tokens, config.network, config.spotify.market) as api:
        return await run_reshuffle(
            api,
            request,
            policy=RetryPolicy.from_config(config.network),
            show_progress=show_progress,
        )


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `spot-reshuffle` from the
    command line.
    """
    cli()


if __name__ == "__main__":
    main()
