"""Record types for the memoria corpus.

Everything on disk is loosely-typed JSON written by several tools over
time, so these models are the read boundary: documents are validated here
and bad values fall back to typed defaults instead of being probed field by
field at every call site. Field names follow the on-disk camelCase keys.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

INDEX_VERSION = 1


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(
        timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None when it isn't one.

    A trailing "Z" is accepted and naive timestamps are taken as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text[-1] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


# ── Index records ─────────────────────────────────────────────


class IndexItem(BaseModel):
    """Denormalized summary of one document."""
    id: str
    title: str = "Untitled"
    createdAt: str
    updatedAt: str | None = None
    tags: list[str] = Field(default_factory=list)
    filePath: str

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> list[str]:
        return _string_list(value)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class SessionIndexItem(IndexItem):
    goal: str | None = None
    sessionType: str | None = None
    branch: str | None = None
    user: str | None = None
    interactionCount: int = 0


class DecisionIndexItem(IndexItem):
    status: str = "active"
    user: str | None = None


class Index(BaseModel):
    """A persisted index: version, build time and sorted items."""
    version: int = INDEX_VERSION
    updatedAt: str = ""
    items: list[dict[str, Any]] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return len(self.items) == 0

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


# ── Session records ───────────────────────────────────────────


class Action(BaseModel):
    type: str
    path: str
    summary: str


class Interaction(BaseModel):
    """One entry in a session's interaction history."""
    model_config = ConfigDict(extra="allow")

    id: str
    topic: str = ""
    timestamp: str
    filesModified: list[str] | None = None
    problem: str | None = None
    actions: list[Action] | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class Comment(BaseModel):
    id: str
    content: str
    user: str
    createdAt: str


class SessionDocument(BaseModel):
    """The parts of a session the recorder touches; everything else passes through."""
    model_config = ConfigDict(extra="allow")

    id: Any = ""
    interactions: list[Any] = Field(default_factory=list)

    @field_validator("interactions", mode="before")
    @classmethod
    def _coerce_interactions(cls, value: Any) -> list[Any]:
        return value if isinstance(value, list) else []


# ── Pattern learning records ──────────────────────────────────

PatternType = Literal["error-solution", "co-change", "rule-candidate"]
PatternSource = Literal["git-commit", "review", "co-occurrence"]


class LearnedPattern(BaseModel):
    """A signal mined from commits or reviews."""
    type: PatternType
    source: PatternSource
    confidence: float = Field(ge=0.0, le=1.0)
    data: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


class Commit(BaseModel):
    hash: str = ""
    message: str = ""
    files: list[str] = Field(default_factory=list)


class ReviewFinding(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str
    ruleId: str | None = None


class Review(BaseModel):
    model_config = ConfigDict(extra="allow")

    findings: list[ReviewFinding] = Field(default_factory=list)

    @field_validator("findings", mode="before")
    @classmethod
    def _coerce_findings(cls, value: Any) -> list[Any]:
        # Drop malformed findings individually, keep the rest.
        if not isinstance(value, list):
            return []
        findings = []
        for item in value:
            try:
                findings.append(ReviewFinding.model_validate(item))
            except ValidationError:
                continue
        return findings


# ── Rules ─────────────────────────────────────────────────────


class RuleItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    category: str
    rule: str
    severity: str | None = None
    enabled: bool | None = None
    createdAt: str | None = None
    updatedAt: str | None = None


class RuleDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    version: int | None = None
    createdAt: str | None = None
    updatedAt: str | None = None
    rules: list[RuleItem] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
