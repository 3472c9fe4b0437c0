"""Date-sharded JSON document store.

Layout under the corpus root:
- Dated kinds: <kind>/<YYYY>/<MM>/<id>.json
- Flat kinds: <kind>/<id>.json
- Indexes: .indexes/<kind>.json (see memoria.index)
"""

from memoria.store.documents import (
    DocumentStore,
    read_json,
    sort_documents,
    write_json,
)
from memoria.store.paths import (
    DATED_KINDS,
    INDEX_DIR,
    is_valid_shard_path,
    shard_path,
    validate_id,
)

__all__ = [
    "DocumentStore",
    "DATED_KINDS",
    "INDEX_DIR",
    "is_valid_shard_path",
    "read_json",
    "shard_path",
    "sort_documents",
    "validate_id",
    "write_json",
]
