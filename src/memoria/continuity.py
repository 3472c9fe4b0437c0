"""Session continuity: pick up where the last session left off.

Builds the context a new session starts from:

- the most recent session document (newest ``createdAt`` first)
- unchecked ``- [ ]`` / ``* [ ]`` items from a markdown task list
- a short markdown summary of that session

Usage:
    context = build_continue_context(DocumentStore(root))
    print(context.summary)
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from memoria.store import DocumentStore, sort_documents

logger = logging.getLogger(__name__)

SESSIONS_KIND = "sessions"
DEFAULT_TASKS_PATH = Path("docs/plans/tasks.md")
NO_SESSION_SUMMARY = "No previous session found"

RECENT_INTERACTIONS = 5
MAX_SUMMARY_FILES = 10

_PENDING_TASK = re.compile(r"^[-*]\s*\[\s*\]\s*(.+)$")


@dataclass
class ContinueContext:
    previous_session: dict[str, Any] | None = None
    pending_tasks: list[str] = field(default_factory=list)
    summary: str = NO_SESSION_SUMMARY

    def to_dict(self) -> dict[str, Any]:
        return {
            "previousSession": self.previous_session,
            "pendingTasks": self.pending_tasks,
            "summary": self.summary,
        }


def extract_pending_tasks(markdown: str) -> list[str]:
    """Unchecked task-list items, in document order."""
    pending = []
    for line in markdown.split("\n"):
        match = _PENDING_TASK.match(line)
        if match:
            pending.append(match.group(1).strip())
    return pending


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def generate_session_summary(session: dict[str, Any]) -> str:
    """Markdown summary of a session.

    Includes the title and goal, the topic/choice pairs among the last five
    interactions, and up to ten distinct modified files.
    """
    summary = session.get("summary")
    summary = summary if isinstance(summary, dict) else {}
    title = _text(session.get("title")) or _text(summary.get("title"))
    goal = _text(session.get("goal")) or _text(summary.get("goal"))

    parts = []
    if title:
        parts.append(f"**Session:** {title}")
    if goal:
        parts.append(f"**Goal:** {goal}")

    interactions = session.get("interactions")
    interactions = [i for i in interactions if isinstance(i, dict)] if isinstance(interactions, list) else []
    if interactions:
        decisions = [
            i for i in interactions[-RECENT_INTERACTIONS:]
            if _text(i.get("topic")) and _text(i.get("choice"))
        ]
        if decisions:
            parts.append("\n**Key decisions:**")
            parts.extend(f"- {i['topic']}: {i['choice']}" for i in decisions)

        files: dict[str, None] = {}
        for interaction in interactions:
            modified = interaction.get("filesModified")
            if isinstance(modified, list):
                files.update((f, None) for f in modified if isinstance(f, str) and f)
        if files:
            parts.append(f"\n**Files modified:** {', '.join(list(files)[:MAX_SUMMARY_FILES])}")

    return "\n".join(parts)


def load_pending_tasks(tasks_path: Path) -> list[str]:
    if not tasks_path.is_file():
        return []
    try:
        return extract_pending_tasks(tasks_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to read task list {tasks_path}: {e}")
        return []


def build_continue_context(
    store: DocumentStore,
    tasks_path: Path | str | None = None,
) -> ContinueContext:
    """Context for resuming work from the latest session.

    Args:
        store: Corpus to read sessions from.
        tasks_path: Markdown task list; defaults to docs/plans/tasks.md
            relative to the working directory. A missing file means no tasks.
    """
    sessions = sort_documents(store.list(SESSIONS_KIND))
    previous = sessions[0] if sessions else None
    pending = load_pending_tasks(Path(tasks_path) if tasks_path else DEFAULT_TASKS_PATH)

    return ContinueContext(
        previous_session=previous,
        pending_tasks=pending,
        summary=generate_session_summary(previous) if previous else NO_SESSION_SUMMARY,
    )
