"""Tests for the operator CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from insight_store import __version__
from insight_store.cli.app import app, get_config_file, open_store
from insight_store.models import LifecycleState, SearchMode
from insight_store.services import artifacts as factories
from insight_store.utils.structured_logger import StructuredLogger

runner = CliRunner()


@pytest.fixture(autouse=True)
def profile(tmp_path: Path, monkeypatch) -> Path:
    """Point the CLI at a throwaway profile directory."""
    monkeypatch.setenv("INSIGHT_STORE_HOME", str(tmp_path / "profile"))
    return tmp_path / "profile"


def seed_channels(*names: str) -> None:
    store = open_store()
    for name in names:
        store.vault.upsert(
            factories.channel_artifact({"id": name, "name": f"{name} channel"})
        )


class TestGeneral:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_init_writes_config(self, profile: Path):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert get_config_file().is_file()
        assert get_config_file().parent == profile

    def test_init_refuses_overwrite(self):
        runner.invoke(app, ["init"])
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert runner.invoke(app, ["init", "--force"]).exit_code == 0

    def test_show_config(self):
        result = runner.invoke(app, ["--show-config"])
        assert result.exit_code == 0
        assert "max_capacity = 500" in result.stdout

    def test_status(self):
        seed_channels("UC1")
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "1 / 500" in result.stdout


class TestVaultCommands:
    def test_list(self):
        seed_channels("UC1", "UC2")
        result = runner.invoke(app, ["vault", "list"])
        assert result.exit_code == 0
        assert "channel_UC1" in result.stdout
        assert "channel_UC2" in result.stdout

    def test_list_empty(self):
        result = runner.invoke(app, ["vault", "list"])
        assert result.exit_code == 0
        assert "No saved items" in result.stdout

    def test_list_unknown_kind(self):
        result = runner.invoke(app, ["vault", "list", "--kind", "podcast"])
        assert result.exit_code != 0

    def test_trash_and_restore(self):
        seed_channels("UC1")
        assert runner.invoke(app, ["vault", "trash", "channel_UC1"]).exit_code == 0
        assert open_store().vault.get("channel_UC1").lifecycle_state is LifecycleState.TRASHED

        result = runner.invoke(app, ["vault", "list", "--trash"])
        assert "channel_UC1" in result.stdout

        assert runner.invoke(app, ["vault", "restore", "channel_UC1"]).exit_code == 0
        assert open_store().vault.get("channel_UC1").is_active

    def test_trash_unknown_id_fails(self):
        result = runner.invoke(app, ["vault", "trash", "nope"])
        assert result.exit_code == 1
        assert "No item with id 'nope'" in result.stdout

    def test_restore_when_full(self):
        runner.invoke(app, ["init"])
        get_config_file().write_text(
            "[DEFAULT]\nmax_capacity = 2\nwarning_threshold = 1\n"
        )
        seed_channels("UC1", "UC2")
        runner.invoke(app, ["vault", "trash", "channel_UC1"])
        seed_channels("UC3")
        result = runner.invoke(app, ["vault", "restore", "channel_UC1"])
        assert result.exit_code == 1
        assert "vault is full" in result.stdout

    def test_delete_requires_confirmation(self):
        seed_channels("UC1")
        runner.invoke(app, ["vault", "trash", "channel_UC1"])
        result = runner.invoke(app, ["vault", "delete", "channel_UC1"], input="n\n")
        assert result.exit_code != 0
        assert open_store().vault.get("channel_UC1") is not None

        result = runner.invoke(app, ["vault", "delete", "channel_UC1", "--yes"])
        assert result.exit_code == 0
        assert open_store().vault.get("channel_UC1") is None

    def test_clear(self):
        seed_channels("UC1", "UC2")
        result = runner.invoke(app, ["vault", "clear", "--yes"])
        assert result.exit_code == 0
        assert "Moved 2 item(s)" in result.stdout
        assert open_store().vault.usage().active == 0

    def test_export(self, tmp_path: Path):
        seed_channels("UC1")
        out = tmp_path / "export.csv"
        result = runner.invoke(app, ["vault", "export", str(out)])
        assert result.exit_code == 0
        assert "channel_UC1" in out.read_text(encoding="utf-8-sig")

    def test_purge(self):
        result = runner.invoke(app, ["vault", "purge"])
        assert result.exit_code == 0
        assert "Nothing to prune" in result.stdout

    def test_mutations_are_logged(self):
        seed_channels("UC1")
        runner.invoke(app, ["vault", "trash", "channel_UC1"])
        runner.invoke(app, ["vault", "trash", "missing"])
        actions = [(e.action, e.status) for e in open_store().system_log.entries()]
        assert ("Trashed missing", "not_found") in actions
        assert ("Trashed channel_UC1", "Success") in actions

        result = runner.invoke(app, ["logs"])
        assert result.exit_code == 0
        assert "System Initialized" in result.stdout


class TestQueryAndCacheCommands:
    def test_top(self):
        store = open_store()
        store.queries.record("Camp")
        store.queries.record("camp")
        store.queries.record("mrbeast", SearchMode.CHANNEL)
        result = runner.invoke(app, ["queries", "top", "5"])
        assert result.exit_code == 0
        assert result.stdout.index("camp") < result.stdout.index("mrbeast")

    def test_prune(self):
        result = runner.invoke(app, ["queries", "prune"])
        assert result.exit_code == 0
        assert "Removed 0" in result.stdout

    def test_cache_clear(self):
        store = open_store()
        store.api_cache.put("a", 1)
        store.velocity_cache.put("a", 2)
        result = runner.invoke(app, ["cache", "clear", "api"])
        assert result.exit_code == 0
        assert "1 entries removed" in result.stdout
        assert open_store().velocity_cache.get_raw("a").value == 2

    def test_cache_clear_unknown(self):
        result = runner.invoke(app, ["cache", "clear", "bogus"])
        assert result.exit_code != 0


class TestIssueCommands:
    def test_report_and_resolve(self):
        result = runner.invoke(app, ["issues", "report", "Export is empty", "--user", "ops"])
        assert result.exit_code == 0
        assert "Filed issue #2" in result.stdout

        assert runner.invoke(app, ["issues", "resolve", "2"]).exit_code == 0
        result = runner.invoke(app, ["issues", "list"])
        assert "Resolved" in result.stdout
        assert "Pending" in result.stdout

        actions = [e.action for e in open_store().system_log.entries()]
        assert actions[:2] == ["Issue #2 Resolved", "Issue Reported"]

    def test_resolve_unknown(self):
        result = runner.invoke(app, ["issues", "resolve", "42"])
        assert result.exit_code == 1
        assert "No issue #42" in result.stdout


class TestAuditLog:
    def test_events_written_and_file_closed(self, profile: Path, monkeypatch):
        closed = []
        original_close = StructuredLogger.close

        def tracking_close(self):
            closed.append(self.json_log_path)
            original_close(self)

        monkeypatch.setattr(StructuredLogger, "close", tracking_close)
        seed_channels("UC1")

        result = runner.invoke(app, ["--audit", "vault", "trash", "channel_UC1"])
        assert result.exit_code == 0

        (path,) = (profile / "logs").glob("insight_store_*.jsonl")
        assert closed == [path]
        events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
        assert events[0]["event"] == "artifact_trashed"
        assert events[0]["command"].endswith("vault trash")
        assert events[0]["profile"] == str(profile)

    def test_no_audit_file_by_default(self, profile: Path):
        seed_channels("UC1")
        runner.invoke(app, ["vault", "trash", "channel_UC1"])
        assert not (profile / "logs").exists()
