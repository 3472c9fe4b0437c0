"""Sharded JSON document store.

Each document is one pretty-printed JSON file. Dated kinds (sessions,
decisions) are sharded by the UTC year/month of ``createdAt``; every other
kind is flat. The store is fail-soft on the read side: a missing, unreadable
or unparseable file is "not there", never an exception that aborts a batch.
Writes are not retried and disk errors propagate to the caller.

Usage:
    store = DocumentStore(Path(".memoria"))
    decision = store.create("decisions", {"title": "Use JWT"})
    store.read("decisions", decision["id"])
"""

import json
import logging
import time
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

from memoria.ids import generate_id
from memoria.models import Comment, now_iso, parse_iso
from memoria.store.paths import (
    DATED_KINDS,
    DOCUMENT_SUFFIX,
    is_valid_shard_path,
    shard_path,
    validate_id,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def read_json(path: Path) -> Any | None:
    """Load a JSON file, returning None if it is missing or unparseable."""
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return None


def write_json(path: Path, data: Any) -> None:
    """Write ``data`` as indented JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def sort_documents(documents: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort by ``createdAt`` descending, ties by ``id`` descending.

    Documents with a missing or unparseable ``createdAt`` go last.
    """
    return sorted(
        documents,
        key=lambda d: (parse_iso(d.get("createdAt")) or _EPOCH, str(d.get("id", ""))),
        reverse=True,
    )


def _singular(kind: str) -> str:
    return kind[:-1] if kind.endswith("s") and len(kind) > 1 else kind


class DocumentStore:
    """Kind-addressed JSON documents under a single corpus root."""

    def __init__(self, root: Path | str, dated_kinds: Iterable[str] = DATED_KINDS):
        self.root = Path(root)
        self.dated_kinds = frozenset(dated_kinds)

    def kind_dir(self, kind: str) -> Path:
        if not validate_id(kind):
            raise ValueError(f"Invalid document kind: {kind!r}")
        return self.root / kind

    def is_dated(self, kind: str) -> bool:
        return kind in self.dated_kinds

    # ── Writes ────────────────────────────────────────────────

    def create(self, kind: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Store a new document.

        Mints an id when the payload has none and stamps ``createdAt`` when
        it is missing.

        Args:
            kind: Document kind, e.g. "decisions".
            payload: Document body.

        Returns:
            The stored document with ``id`` and ``createdAt`` populated.

        Raises:
            ValueError: The payload is not an object, its id is unsafe, or
                the id is already stored for this kind in another shard.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"{kind} payload must be a JSON object")

        document = dict(payload)
        doc_id = document.get("id")
        if not doc_id:
            doc_id = generate_id(self._existing_ids(kind), prefix=_singular(kind))
            document["id"] = doc_id
        elif not validate_id(doc_id):
            raise ValueError(f"Invalid {kind} id: {doc_id!r}")

        if not document.get("createdAt"):
            document["createdAt"] = now_iso()

        path = self.root / shard_path(
            kind, document["createdAt"], doc_id, dated=self.is_dated(kind))
        existing = self.locate(kind, doc_id)
        if existing is not None and existing != path:
            raise ValueError(f"{kind} id {doc_id!r} already exists at {existing}")
        write_json(path, document)
        logger.debug(f"Created {kind}/{doc_id} at {path}")
        return document

    def update(self, kind: str, doc_id: str, document: dict[str, Any]) -> dict[str, Any] | None:
        """Replace a document wholesale.

        ``document`` is the complete new body, not a patch. ``id`` is pinned
        to ``doc_id`` so the file name and body always agree, and
        ``updatedAt`` is stamped with the current time.

        Returns:
            The written document, or None if ``doc_id`` was not found.
        """
        if not isinstance(document, dict):
            raise ValueError(f"{kind} document must be a JSON object")

        path = self.locate(kind, doc_id)
        if path is None:
            return None

        updated = dict(document)
        updated["id"] = doc_id
        updated["updatedAt"] = now_iso()
        write_json(path, updated)
        return updated

    def delete(self, kind: str, doc_id: str) -> bool:
        """Delete a document.

        Returns:
            True if deleted, False if not found.
        """
        path = self.locate(kind, doc_id)
        if path is None:
            return False
        path.unlink()
        logger.debug(f"Deleted {kind}/{doc_id}")
        return True

    def add_comment(self, kind: str, doc_id: str, content: str, user: str) -> Comment | None:
        """Append a comment to a document's ``comments`` list."""
        path = self.locate(kind, doc_id)
        if path is None:
            return None
        document = read_json(path)
        if not isinstance(document, dict):
            return None

        comment = Comment(
            id=f"comment-{int(time.time() * 1000)}",
            content=content,
            user=user,
            createdAt=now_iso(),
        )
        comments = document.get("comments")
        if not isinstance(comments, list):
            comments = []
        comments.append(comment.model_dump())
        document["comments"] = comments
        write_json(path, document)
        return comment

    # ── Reads ─────────────────────────────────────────────────

    def locate(self, kind: str, doc_id: str) -> Path | None:
        """Find the file holding ``doc_id``.

        Dated kinds are searched breadth-first and a hit only counts if it
        sits inside a YYYY/MM shard.
        """
        if not validate_id(doc_id):
            return None

        kind_root = self.kind_dir(kind)
        if not self.is_dated(kind):
            path = kind_root / f"{doc_id}{DOCUMENT_SUFFIX}"
            return path if path.is_file() else None

        target = f"{doc_id}{DOCUMENT_SUFFIX}"
        queue = deque([kind_root])
        while queue:
            current = queue.popleft()
            try:
                entries = sorted(current.iterdir())
            except OSError:
                continue
            for entry in entries:
                if entry.is_dir():
                    queue.append(entry)
                elif entry.name == target and entry.is_file() and is_valid_shard_path(kind_root, entry):
                    return entry
        return None

    def read(self, kind: str, doc_id: str) -> dict[str, Any] | None:
        """Load one document, or None if missing, unreadable or unparseable."""
        path = self.locate(kind, doc_id)
        if path is None:
            return None
        data = read_json(path)
        return data if isinstance(data, dict) else None

    def iter_documents(self, kind: str) -> Iterator[tuple[Path, dict[str, Any]]]:
        """Yield ``(path, document)`` for every readable document of a kind.

        Dated kinds only yield files inside YYYY/MM shards. Files that fail
        to parse are logged and skipped.
        """
        kind_root = self.kind_dir(kind)
        if not kind_root.is_dir():
            return

        dated = self.is_dated(kind)
        for path in sorted(kind_root.rglob(f"*{DOCUMENT_SUFFIX}")):
            if not path.is_file():
                continue
            if dated and not is_valid_shard_path(kind_root, path):
                continue
            data = read_json(path)
            if not isinstance(data, dict):
                logger.warning(f"Skipping unreadable {kind} document: {path}")
                continue
            yield path, data

    def list(self, kind: str) -> list[dict[str, Any]]:
        """All readable documents of a kind, in no particular order."""
        return [document for _, document in self.iter_documents(kind)]

    def _existing_ids(self, kind: str) -> set[str]:
        kind_root = self.kind_dir(kind)
        if not kind_root.is_dir():
            return set()
        return {path.stem for path in kind_root.rglob(f"*{DOCUMENT_SUFFIX}")}
