"""Index persistence and staleness policy.

Indexes are derived data: they are rebuilt wholesale from the document
store, never patched, and can be deleted at any time. The store stays
authoritative, so a "fresh" index may still miss a document another
process wrote a moment ago.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from memoria.index.builder import build_index
from memoria.models import Index, parse_iso
from memoria.store import INDEX_DIR, DocumentStore, read_json, write_json

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 300.0


def is_stale(index: Index | None, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS) -> bool:
    """True if ``index`` should be rebuilt before being trusted.

    Purely time-based: a missing or unparseable ``updatedAt`` is stale, as is
    one older than ``max_age_seconds``.
    """
    if index is None:
        return True
    updated_at = parse_iso(index.updatedAt)
    if updated_at is None:
        return True
    age = (datetime.now(timezone.utc) - updated_at).total_seconds()
    return age > max_age_seconds


class IndexManager:
    """Builds, persists and reads per-kind indexes under ``<root>/.indexes``.

    Args:
        store: Document store the indexes are derived from.
        rebuild_empty: When True (default), ``get_or_create_index`` treats a
            persisted index with no items as absent and rebuilds it. When
            False, an index that was actually built is returned even if empty.
    """

    def __init__(self, store: DocumentStore, rebuild_empty: bool = True):
        self.store = store
        self.rebuild_empty = rebuild_empty
        self.index_dir = store.root / INDEX_DIR

    def index_path(self, kind: str) -> Path:
        self.store.kind_dir(kind)  # validates the kind name
        return self.index_dir / f"{kind}.json"

    def build_index(self, kind: str) -> Index:
        return build_index(self.store, kind)

    def persist_index(self, kind: str, index: Index) -> Path:
        path = self.index_path(kind)
        write_json(path, index.to_dict())
        return path

    def read_index(self, kind: str) -> Index:
        """Load the persisted index, or an empty one if absent or unreadable."""
        data = read_json(self.index_path(kind))
        if not isinstance(data, dict):
            return Index()
        try:
            return Index.model_validate(data)
        except ValidationError:
            logger.warning(f"Ignoring malformed {kind} index at {self.index_path(kind)}")
            return Index()

    def rebuild_index(self, kind: str) -> Index:
        index = self.build_index(kind)
        self.persist_index(kind, index)
        logger.info(f"Rebuilt {kind} index ({len(index.items)} items)")
        return index

    def rebuild_all_indexes(self) -> dict[str, Index]:
        """Rebuild the index of every dated kind."""
        return {kind: self.rebuild_index(kind) for kind in sorted(self.store.dated_kinds)}

    def get_or_create_index(self, kind: str) -> Index:
        """Return the persisted index, rebuilding it if it has no items.

        An empty corpus therefore triggers a (harmless) rebuild on every call
        unless ``rebuild_empty`` is False.
        """
        existing = self.read_index(kind)
        if not existing.is_empty:
            return existing
        if not self.rebuild_empty and existing.updatedAt and self.index_path(kind).is_file():
            return existing
        return self.rebuild_index(kind)

    def is_stale(self, index: Index | None, max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS) -> bool:
        return is_stale(index, max_age_seconds)
