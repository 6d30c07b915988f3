"""Test the command-line interface"""

import pytest
from click.testing import CliRunner

import spot_reshuffle.cli as cli_module
from spot_reshuffle import __version__
from spot_reshuffle.core.exceptions import (
    AuthError,
    CollectionFailed,
    ReshuffleError,
    SourceUnavailable,
    SyncFailure,
    SyncStage,
    TransientError,
)
from spot_reshuffle.pipeline import RunSummary
from spot_reshuffle.spotify.models import SourceSpec

ENV = {"SPOTIPY_CLIENT_ID": "env-id", "SPOTIPY_CLIENT_SECRET": "env-secret"}


class CapturingExecute:
    """Replacement for cli._execute recording its arguments"""

    def __init__(self, error=None):
        self.error = error
        self.config = None
        self.request = None

    async def __call__(self, config, request, show_progress):
        self.config = config
        self.request = request
        if self.error is not None:
            raise self.error
        return RunSummary(
            total_retrieved=3,
            duplicates_removed=0,
            invalid_skipped=0,
            items_synced=3,
            target_collection_url="https://open.spotify.com/playlist/mix1",
            target_name=request.target_name,
        )


@pytest.fixture
def runner(temp_dir):
    runner = CliRunner()
    with runner.isolated_filesystem(temp_dir=temp_dir):
        yield runner


@pytest.fixture
def execute(monkeypatch):
    fake = CapturingExecute()
    monkeypatch.setattr(cli_module, "_execute", fake)
    return fake


class TestCli:
    """Test argument handling"""

    def test_version(self, runner):
        """Test --version"""
        result = runner.invoke(cli_module.cli, ["--version"])
        assert result.exit_code == 0
        assert f"spot-reshuffle {__version__}" in result.output

    def test_sources_are_split(self, runner, execute):
        """Test comma-separated and repeated -s values"""
        result = runner.invoke(
            cli_module.cli,
            ["-s", "p1,p2", "-s", "p3", "--include-liked", "-t", "Mix", "--no-progress"],
            env=ENV,
        )
        assert result.exit_code == 0, result.output
        assert execute.request.sources == (
            SourceSpec.playlist("p1"),
            SourceSpec.playlist("p2"),
            SourceSpec.playlist("p3"),
            SourceSpec.liked(),
        )
        assert execute.request.target_name == "Mix"

    def test_defaults_from_config(self, runner, execute):
        """Test sources and target read from config.yaml"""
        with open("config.yaml", "w", encoding="utf-8") as f:
            f.write(
                "spotify:\n  client_id: id\n  client_secret: secret\n"
                "reshuffle:\n  source_playlists: [p9]\n  target_playlist_name: Daily\n"
            )
        result = runner.invoke(cli_module.cli, [], env={})
        assert result.exit_code == 0, result.output
        assert execute.request.sources == (SourceSpec.playlist("p9"),)
        assert execute.request.target_name == "Daily"

    def test_cache_path_override(self, runner, execute, temp_dir):
        """Test --cache-path replaces the configured token cache"""
        cache = temp_dir / "token.json"
        result = runner.invoke(
            cli_module.cli, ["-s", "p1", "-t", "Mix", "--cache-path", str(cache)], env=ENV
        )
        assert result.exit_code == 0, result.output
        assert execute.config.spotify.cache_path == cache.resolve()

    def test_no_sources(self, runner, execute):
        """Test exit code 1 without any source"""
        result = runner.invoke(cli_module.cli, ["-t", "Mix"], env=ENV)
        assert result.exit_code == 1
        assert "Configuration error" in result.output
        assert execute.request is None

    def test_missing_credentials(self, runner, execute):
        """Test exit code 1 without credentials"""
        result = runner.invoke(cli_module.cli, ["-s", "p1", "-t", "Mix"], env={
            "SPOTIPY_CLIENT_ID": "", "SPOTIPY_CLIENT_SECRET": ""
        })
        assert result.exit_code == 1
        assert "client_id" in result.output

    def test_blank_target(self, runner):
        """Test a blank --target-name is a usage error"""
        result = runner.invoke(cli_module.cli, ["-s", "p1", "-t", "  "], env=ENV)
        assert result.exit_code == 2


class TestExitCodes:
    """Test failures map to exit codes"""

    @pytest.mark.parametrize("error, code", [
        (AuthError("login failed"), 2),
        (SourceUnavailable(SourceSpec.playlist("p1")), 3),
        (CollectionFailed(SourceSpec.liked(), TransientError("503")), 3),
        (SyncFailure(SyncStage.POPULATING, 200, TransientError("503")), 4),
        (ReshuffleError("other"), 1),
        (RuntimeError("bug"), 1),
        (KeyboardInterrupt(), 130),
    ])
    def test_exit_code(self, runner, monkeypatch, error, code):
        """Test each failure class"""
        monkeypatch.setattr(cli_module, "_execute", CapturingExecute(error))
        result = runner.invoke(cli_module.cli, ["-s", "p1", "-t", "Mix"], env=ENV)
        assert result.exit_code == code

    def test_sync_failure_message(self, runner, monkeypatch):
        """Test the stage and mutated count are reported"""
        error = SyncFailure(SyncStage.POPULATING, 200, TransientError("503"))
        monkeypatch.setattr(cli_module, "_execute", CapturingExecute(error))
        result = runner.invoke(cli_module.cli, ["-s", "p1", "-t", "Mix"], env=ENV)
        assert "populating" in result.output
        assert "200 tracks added" in result.output
