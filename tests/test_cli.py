"""Tests for the memoria CLI adapter and settings."""

import json

import pytest
from typer.testing import CliRunner

from memoria.cli import app
from memoria.config import get_settings, save_config
from memoria.store import DocumentStore

runner = CliRunner()


@pytest.fixture
def root(tmp_path):
    return tmp_path / ".memoria"


@pytest.fixture
def store(root):
    return DocumentStore(root)


def invoke(root, *args, **kwargs):
    return runner.invoke(app, ["--root", str(root), *args], **kwargs)


class TestDocumentCommands:

    def test_info(self, root, store):
        store.create("decisions", {"id": "d1", "createdAt": "2026-01-27T10:00:00Z"})
        result = invoke(root, "info")
        assert result.exit_code == 0
        assert "decisions" in result.stdout

    def test_show(self, root, store):
        store.create("decisions", {"id": "d1", "createdAt": "2026-01-27T10:00:00Z", "title": "JWT"})
        result = invoke(root, "show", "decisions", "d1")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["title"] == "JWT"

    def test_show_missing(self, root):
        assert invoke(root, "show", "decisions", "ghost").exit_code == 1

    def test_delete(self, root, store):
        store.create("sessions", {"id": "s1", "createdAt": "2026-01-27T10:00:00Z"})
        assert invoke(root, "delete", "sessions", "s1").exit_code == 0
        assert store.read("sessions", "s1") is None
        assert invoke(root, "delete", "sessions", "s1").exit_code == 1

    @pytest.mark.parametrize("command", ["show", "delete"])
    def test_invalid_kind_exits_cleanly(self, root, command):
        result = invoke(root, command, "../x", "d1")
        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)

    def test_rebuild_invalid_kind_exits_cleanly(self, root):
        result = invoke(root, "index", "rebuild", "../x")
        assert result.exit_code == 1
        assert not isinstance(result.exception, ValueError)

    def test_list(self, root, store):
        store.create("sessions", {"id": "s1", "createdAt": "2026-01-27T10:00:00Z"})
        result = invoke(root, "list", "sessions")
        assert result.exit_code == 0
        assert "s1" in result.stdout


class TestIndexCommands:

    def test_rebuild_all(self, root, store):
        store.create("sessions", {"id": "s1", "createdAt": "2026-01-27T10:00:00Z"})
        result = invoke(root, "index", "rebuild")
        assert result.exit_code == 0
        assert (root / ".indexes" / "sessions.json").exists()
        assert (root / ".indexes" / "decisions.json").exists()

    def test_status(self, root):
        invoke(root, "index", "rebuild", "sessions")
        result = invoke(root, "index", "status")
        assert result.exit_code == 0
        assert "sessions" in result.stdout


class TestLearnAndRecord:

    def test_learn_outputs_json(self, root):
        reviews = root / "reviews"
        reviews.mkdir(parents=True)
        for i in range(3):
            (reviews / f"r{i}.json").write_text(json.dumps(
                {"findings": [{"title": "Check nulls", "ruleId": None}]}))

        result = invoke(root, "learn", "--analyze-reviews")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["patterns"][0]["data"] == {"text": "check nulls", "occurrences": 3}

    def test_record_from_stdin(self, root, store):
        store.create("sessions", {"id": "s1", "createdAt": "2026-01-27T10:00:00Z", "interactions": []})
        hook = {
            "tool_name": "Bash",
            "tool_input": {"command": "pytest"},
            "tool_result": {"exitCode": 1, "stderr": "1 failed"},
        }
        result = invoke(root, "record", "--session-id", "s1", input=json.dumps(hook))

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"success": True}
        interactions = store.read("sessions", "s1")["interactions"]
        assert interactions[0]["problem"] == "Exit code 1: 1 failed"

    def test_record_bad_payload_still_exits_zero(self, root):
        result = invoke(root, "record", "--session-id", "s1", input="{not json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["success"] is False

    def test_record_requires_target(self, root):
        result = invoke(root, "record", input="{}")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["success"] is False


    def test_resume(self, root, store, tmp_path):
        store.create("sessions", {"id": "s1", "createdAt": "2026-01-27T10:00:00Z", "title": "Auth"})
        tasks = tmp_path / "tasks.md"
        tasks.write_text("- [ ] add refresh tokens\n")

        result = invoke(root, "resume", "--tasks", str(tasks))

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["success"] is True
        assert payload["context"]["previousSession"]["id"] == "s1"
        assert payload["context"]["pendingTasks"] == ["add refresh tokens"]
        assert "**Session:** Auth" in payload["context"]["summary"]


class TestRulesCommands:

    def test_add_and_list(self, root):
        assert invoke(root, "rules", "add", "security", "Never log tokens", "-s", "error").exit_code == 0
        result = invoke(root, "rules", "list")
        assert result.exit_code == 0
        assert "security" in result.stdout


class TestSettings:

    def test_root_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORIA_ROOT", str(tmp_path / "corpus"))
        assert get_settings().root == tmp_path / "corpus"

    def test_project_root_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MEMORIA_ROOT", raising=False)
        monkeypatch.setenv("MEMORIA_PROJECT_ROOT", str(tmp_path))
        assert get_settings().root == tmp_path / ".memoria"

    def test_config_yaml_round_trip(self, root):
        settings = get_settings(root)
        settings.rebuild_empty_index = False
        settings.index_max_age_seconds = 60
        save_config(settings)

        reloaded = get_settings(root)
        assert reloaded.rebuild_empty_index is False
        assert reloaded.index_max_age_seconds == 60

    def test_invalid_config_falls_back_to_defaults(self, root):
        root.mkdir(parents=True)
        (root / "config.yaml").write_text("review_min_occurrences: 2\n")
        assert get_settings(root).review_min_occurrences == 3

    def test_review_threshold_can_be_raised(self, root):
        root.mkdir(parents=True)
        (root / "config.yaml").write_text("review_min_occurrences: 5\n")
        assert get_settings(root).review_min_occurrences == 5
