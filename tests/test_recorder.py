"""Tests for the tool-use interaction recorder."""

import json

import pytest

from memoria.recorder import InteractionRecorder, ToolUseEvent
from memoria.store import DocumentStore

TIMESTAMP = "2026-01-27T10:00:00Z"


@pytest.fixture
def store(tmp_path):
    return DocumentStore(tmp_path / ".memoria")


@pytest.fixture
def recorder(store):
    return InteractionRecorder(store)


@pytest.fixture
def session_path(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"id": "test-session", "interactions": []}))
    return path


def load_interactions(path):
    return json.loads(path.read_text())["interactions"]


def event(session_path, tool_name, tool_input=None, tool_result=None):
    return ToolUseEvent(
        session_path=session_path,
        tool_name=tool_name,
        tool_input=tool_input or {},
        tool_result=tool_result or {},
        timestamp=TIMESTAMP,
    )


class TestShellCommands:

    def test_successful_command_not_recorded(self, recorder, session_path):
        result = recorder.record_tool_use(event(
            session_path, "Bash", {"command": "ls"}, {"exit_code": 0, "stdout": "file1 file2"}))
        assert result is None
        assert load_interactions(session_path) == []

    def test_unknown_exit_code_not_recorded(self, recorder, session_path):
        result = recorder.record_tool_use(event(session_path, "Bash", {"command": "ls"}, {}))
        assert result is None
        assert load_interactions(session_path) == []

    def test_failed_command_recorded_as_problem(self, recorder, session_path):
        recorder.record_tool_use(event(
            session_path, "Bash", {"command": "npm test"}, {"exit_code": 1, "stderr": "Test failed"}))

        interactions = load_interactions(session_path)
        assert len(interactions) == 1
        assert "Test failed" in interactions[0]["problem"]
        assert interactions[0]["problem"] == "Exit code 1: Test failed"
        assert interactions[0]["topic"] == "Command error: npm test"
        assert interactions[0]["timestamp"] == TIMESTAMP
        assert interactions[0]["id"].startswith("auto-")

    def test_camel_case_exit_code(self, recorder, session_path):
        recorder.record_tool_use(event(session_path, "Bash", {"command": "make"}, {"exitCode": 2}))
        assert load_interactions(session_path)[0]["problem"] == "Exit code 2: Unknown error"

    def test_long_output_is_truncated(self, recorder, session_path):
        recorder.record_tool_use(event(
            session_path, "Bash", {"command": "x" * 80}, {"exit_code": 1, "stderr": "e" * 900}))

        interaction = load_interactions(session_path)[0]
        assert interaction["topic"] == "Command error: " + "x" * 50
        assert interaction["problem"] == "Exit code 1: " + "e" * 500


class TestFileEdits:

    def test_edit_recorded(self, recorder, session_path):
        recorder.record_tool_use(event(
            session_path, "Edit",
            {"file_path": "/path/to/file.ts", "old_string": "foo", "new_string": "bar"}))

        interactions = load_interactions(session_path)
        assert len(interactions) == 1
        assert "/path/to/file.ts" in interactions[0]["filesModified"]
        assert interactions[0]["topic"] == "File edit: file.ts"
        assert interactions[0]["actions"] == [
            {"type": "edit", "path": "/path/to/file.ts", "summary": "Edited file"},
        ]
        assert "problem" not in interactions[0]

    def test_write_recorded(self, recorder, session_path):
        recorder.record_tool_use(event(
            session_path, "Write", {"file_path": "/path/to/new-file.ts", "content": "hello"}))

        interactions = load_interactions(session_path)
        assert len(interactions) == 1
        assert interactions[0]["filesModified"] == ["/path/to/new-file.ts"]
        assert interactions[0]["topic"] == "File write: new-file.ts"

    def test_appends_to_existing_interactions(self, recorder, session_path):
        session_path.write_text(json.dumps({
            "id": "test-session",
            "title": "Keep me",
            "interactions": [{"id": "existing", "topic": "Existing interaction"}],
        }))
        recorder.record_tool_use(event(session_path, "Edit", {"file_path": "/path/to/file.ts"}))

        session = json.loads(session_path.read_text())
        assert len(session["interactions"]) == 2
        assert session["interactions"][0]["id"] == "existing"
        assert session["title"] == "Keep me"


class TestOtherEvents:

    def test_unknown_tool_ignored(self, recorder, session_path):
        assert recorder.record_tool_use(event(session_path, "Read", {"file_path": "/a"})) is None
        assert load_interactions(session_path) == []

    def test_missing_session_file_is_started(self, recorder, tmp_path):
        path = tmp_path / "fresh" / "session.json"
        recorder.record_tool_use(event(path, "Write", {"file_path": "/a/b.py"}))
        assert len(load_interactions(path)) == 1


class TestStoreSessions:

    def test_records_onto_stored_session(self, store, recorder):
        store.create("sessions", {
            "id": "session-1",
            "createdAt": TIMESTAMP,
            "title": "Auth work",
            "interactions": [],
        })
        recorder.record_tool_use(ToolUseEvent(
            session_id="session-1",
            tool_name="Edit",
            tool_input={"file_path": "src/auth.py"},
        ))

        session = store.read("sessions", "session-1")
        assert session["title"] == "Auth work"
        assert session["updatedAt"]
        assert session["interactions"][0]["filesModified"] == ["src/auth.py"]

    def test_unknown_session_id(self, store, recorder):
        result = recorder.record_tool_use(ToolUseEvent(
            session_id="ghost",
            tool_name="Bash",
            tool_input={"command": "false"},
            tool_result={"exit_code": 1},
        ))
        assert result is None
        assert store.list("sessions") == []
