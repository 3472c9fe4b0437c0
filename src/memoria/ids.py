"""Collision-checked random identifiers.

Ids look like ``rule-3f9a0c1b2d4e``: a namespace prefix and 12 hex
characters. The caller supplies the ids already in use; we retry on
collision and give up loudly after a bounded number of attempts rather
than hand back a duplicate.
"""

import secrets
from typing import Container

MAX_ATTEMPTS = 100
TOKEN_BYTES = 6


class IdGenerationError(RuntimeError):
    """Raised when no unique id could be minted within the attempt budget."""

    def __init__(self, prefix: str, attempts: int):
        super().__init__(
            f"Failed to generate unique {prefix} ID after {attempts} attempts")
        self.prefix = prefix
        self.attempts = attempts


def generate_id(
    existing_ids: Container[str] = frozenset(),
    prefix: str = "rule",
    max_attempts: int = MAX_ATTEMPTS,
) -> str:
    """Mint an id that is not in ``existing_ids``.

    Args:
        existing_ids: Ids already taken in the target namespace.
        prefix: Namespace prefix, e.g. "rule" or "decision".
        max_attempts: Candidates to try before giving up.

    Returns:
        A fresh ``<prefix>-<hex>`` id.

    Raises:
        IdGenerationError: Every candidate collided.
    """
    for _ in range(max_attempts):
        candidate = f"{prefix}-{secrets.token_hex(TOKEN_BYTES)}"
        if candidate not in existing_ids:
            return candidate
    raise IdGenerationError(prefix, max_attempts)
