"""Pattern learning over commits, co-changes and review findings."""

from memoria.learning.patterns import (
    CoChange,
    ReviewCandidate,
    aggregate_review_findings,
    detect_co_changes,
    learn_patterns,
    parse_fix_commit,
)

__all__ = [
    "CoChange",
    "ReviewCandidate",
    "aggregate_review_findings",
    "detect_co_changes",
    "learn_patterns",
    "parse_fix_commit",
]
