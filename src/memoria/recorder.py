"""Interaction recorder: tool-use events into session history.

Called from a post-tool-use hook. Only newsworthy events are kept:

- Edit / Write     -> "File edit: app.py" with the modified path
- Bash, exit != 0  -> "Command error: npm test" with the stderr excerpt
- Bash, exit 0 or unknown exit code, anything else -> ignored

Each recorded event is appended to the session's ``interactions`` list and
the whole session document is rewritten. There is no locking: two hooks
racing on the same session are last-writer-wins.
"""

import logging
import time
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from memoria.models import Action, Interaction, SessionDocument, now_iso
from memoria.store import DocumentStore, read_json, write_json

logger = logging.getLogger(__name__)

SESSIONS_KIND = "sessions"
SHELL_TOOLS = frozenset({"Bash"})
FILE_TOOLS = frozenset({"Edit", "Write"})

TOPIC_COMMAND_CHARS = 50
PROBLEM_STDERR_CHARS = 500

_ACTION_SUMMARIES = {
    "Edit": "Edited file",
    "Write": "Created/wrote file",
}


class ToolResult(BaseModel):
    exit_code: int | None = Field(
        default=None, validation_alias=AliasChoices("exit_code", "exitCode"))
    stderr: str | None = None
    stdout: str | None = None


class ToolUseEvent(BaseModel):
    """A single tool invocation reported by the agent.

    The target session is addressed either by id (looked up in the store)
    or by an explicit file path.
    """
    tool_name: str
    tool_input: dict[str, Any] = Field(default_factory=dict)
    tool_result: ToolResult = Field(default_factory=ToolResult)
    timestamp: str = Field(default_factory=now_iso)
    session_id: str | None = None
    session_path: Path | None = None


def build_interaction(event: ToolUseEvent) -> Interaction | None:
    """The interaction to record for ``event``, or None if it isn't worth keeping."""
    interaction_id = f"auto-{int(time.time() * 1000)}"

    if event.tool_name in FILE_TOOLS:
        file_path = event.tool_input.get("file_path")
        file_path = file_path if isinstance(file_path, str) else ""
        file_name = Path(file_path).name or "unknown"
        action_type = event.tool_name.lower()
        return Interaction(
            id=interaction_id,
            topic=f"File {action_type}: {file_name}",
            timestamp=event.timestamp,
            filesModified=[file_path],
            actions=[Action(
                type=action_type,
                path=file_path,
                summary=_ACTION_SUMMARIES[event.tool_name],
            )],
        )

    if event.tool_name in SHELL_TOOLS:
        exit_code = event.tool_result.exit_code
        if exit_code is None or exit_code == 0:
            return None
        command = event.tool_input.get("command")
        command = command if isinstance(command, str) and command else "unknown command"
        stderr = (event.tool_result.stderr or "")[:PROBLEM_STDERR_CHARS]
        return Interaction(
            id=interaction_id,
            topic=f"Command error: {command[:TOPIC_COMMAND_CHARS]}",
            timestamp=event.timestamp,
            problem=f"Exit code {exit_code}: {stderr or 'Unknown error'}",
        )

    return None


class InteractionRecorder:
    """Appends tool-use interactions to session documents.

    Usage:
        recorder = InteractionRecorder(DocumentStore(root))
        recorder.record_tool_use(ToolUseEvent(
            session_id="session-abc123",
            tool_name="Bash",
            tool_input={"command": "pytest"},
            tool_result={"exit_code": 1, "stderr": "1 failed"},
        ))
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def record_tool_use(self, event: ToolUseEvent) -> Interaction | None:
        """Record ``event`` on its session.

        Returns:
            The appended interaction, or None if nothing was recorded.
        """
        interaction = build_interaction(event)
        if interaction is None:
            return None

        if event.session_id:
            return self._append_by_id(event.session_id, interaction)
        if event.session_path is not None:
            return self._append_by_path(event.session_path, interaction)

        logger.warning("Tool-use event has neither session_id nor session_path")
        return None

    def _append_by_id(self, session_id: str, interaction: Interaction) -> Interaction | None:
        document = self.store.read(SESSIONS_KIND, session_id)
        if document is None:
            logger.warning(f"Session {session_id} not found; dropping {interaction.topic!r}")
            return None

        session = _load_session(document)
        session.interactions.append(interaction.to_dict())
        self.store.update(SESSIONS_KIND, session_id, session.model_dump())
        return interaction

    def _append_by_path(self, session_path: Path, interaction: Interaction) -> Interaction | None:
        session = _load_session(read_json(session_path))
        session.interactions.append(interaction.to_dict())
        write_json(session_path, session.model_dump())
        return interaction


def _load_session(data: Any) -> SessionDocument:
    if not isinstance(data, dict):
        return SessionDocument()
    try:
        return SessionDocument.model_validate(data)
    except ValidationError:
        return SessionDocument()
