"""Memoria - Flat-file memory for coding-agent sessions.

Modules:
    - store: Date-sharded JSON document store (sessions, decisions, rules, reviews)
    - index: Denormalized, sorted index documents with a staleness policy
    - learning: Pattern mining over commits, co-changes and review findings
    - recorder: Tool-use events appended to session interaction history
    - rules: Rule catalogs with collision-checked rule ids
    - continuity: Resume context from the latest session and a task list
    - ids: Random identifier minting
"""

__version__ = "0.3.0"
