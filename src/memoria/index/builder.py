"""Index building: project documents into sorted summary items."""

import logging
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from memoria.models import (
    DecisionIndexItem,
    Index,
    IndexItem,
    SessionIndexItem,
    now_iso,
)
from memoria.store import DocumentStore, sort_documents

logger = logging.getLogger(__name__)

Projector = Callable[[dict[str, Any], str], IndexItem]


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _user_name(value: Any) -> str | None:
    return _text(_mapping(value).get("name"))


def project_session(doc: dict[str, Any], file_path: str) -> SessionIndexItem:
    summary = _mapping(doc.get("summary"))
    context = _mapping(doc.get("context"))
    interactions = doc.get("interactions")
    return SessionIndexItem(
        id=doc["id"],
        title=_text(summary.get("title")) or _text(doc.get("title")) or "Untitled",
        goal=_text(summary.get("goal")) or _text(doc.get("goal")),
        createdAt=doc["createdAt"],
        updatedAt=_text(doc.get("updatedAt")),
        tags=doc.get("tags"),
        sessionType=_text(doc.get("sessionType")),
        branch=_text(context.get("branch")),
        user=_user_name(context.get("user")),
        interactionCount=len(interactions) if isinstance(interactions, list) else 0,
        filePath=file_path,
    )


def project_decision(doc: dict[str, Any], file_path: str) -> DecisionIndexItem:
    return DecisionIndexItem(
        id=doc["id"],
        title=_text(doc.get("title")) or "Untitled",
        createdAt=doc["createdAt"],
        updatedAt=_text(doc.get("updatedAt")),
        tags=doc.get("tags"),
        status=_text(doc.get("status")) or "active",
        user=_user_name(doc.get("user")),
        filePath=file_path,
    )


def project_document(doc: dict[str, Any], file_path: str) -> IndexItem:
    return IndexItem(
        id=doc["id"],
        title=_text(doc.get("title")) or "Untitled",
        createdAt=doc["createdAt"],
        updatedAt=_text(doc.get("updatedAt")),
        tags=doc.get("tags"),
        filePath=file_path,
    )


PROJECTORS: dict[str, Projector] = {
    "sessions": project_session,
    "decisions": project_decision,
}


def build_index(store: DocumentStore, kind: str) -> Index:
    """Build a fresh index for ``kind`` from the documents of record.

    Documents without an ``id`` or ``createdAt`` are dropped, as are those
    whose fields fail validation. Items are sorted newest first.
    """
    project = PROJECTORS.get(kind, project_document)
    kind_root = store.kind_dir(kind)

    items: list[dict[str, Any]] = []
    for path, doc in store.iter_documents(kind):
        if not _text(doc.get("id")) or not _text(doc.get("createdAt")):
            continue
        file_path = Path(path).relative_to(kind_root).as_posix()
        try:
            item = project(doc, file_path)
        except ValidationError as e:
            logger.warning(f"Skipping {kind} document {path} in index: {e.error_count()} invalid fields")
            continue
        items.append(item.to_dict())

    return Index(updatedAt=now_iso(), items=sort_documents(items))
