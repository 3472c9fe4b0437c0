"""Shard path conventions.

Dated kinds live at ``<kind>/<YYYY>/<MM>/<id>.json`` (UTC year and month
of ``createdAt``), flat kinds at ``<kind>/<id>.json``. The writer and every
reader go through the two functions below so the convention is defined once.
"""

import re
from datetime import datetime, timezone
from pathlib import Path, PurePath

from memoria.models import parse_iso

DATED_KINDS = ("sessions", "decisions")
INDEX_DIR = ".indexes"
DOCUMENT_SUFFIX = ".json"

_YEAR = re.compile(r"^\d{4}$")
_MONTH = re.compile(r"^\d{2}$")
_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_id(doc_id: str) -> bool:
    """True if ``doc_id`` is safe to use as a file stem."""
    return isinstance(doc_id, str) and bool(_ID.match(doc_id))


def shard_dir(created_at: str | None, dated: bool = True) -> PurePath:
    """Directory, relative to the kind root, for a document created at ``created_at``.

    An unparseable timestamp shards under the current month.
    """
    if not dated:
        return PurePath()
    parsed = parse_iso(created_at) or datetime.now(timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return PurePath(f"{parsed.year:04d}", f"{parsed.month:02d}")


def shard_path(kind: str, created_at: str | None, doc_id: str, dated: bool = True) -> PurePath:
    """Path of a document relative to the corpus root."""
    return PurePath(kind) / shard_dir(created_at, dated) / f"{doc_id}{DOCUMENT_SUFFIX}"


def is_valid_shard_path(kind_root: Path, path: Path) -> bool:
    """True if ``path`` follows the YYYY/MM convention under ``kind_root``.

    Stray files at the kind root or in non-date directories are rejected.
    """
    try:
        parts = path.relative_to(kind_root).parts
    except ValueError:
        return False
    return (
        len(parts) >= 3
        and bool(_YEAR.match(parts[0]))
        and bool(_MONTH.match(parts[1]))
    )
