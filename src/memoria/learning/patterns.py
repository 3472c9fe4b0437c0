"""Pattern learning: mine recurring signals from history.

Three analyses, all pure functions:

1. FIX COMMITS     - "fix: ..." commit messages become error-solution patterns
2. CO-CHANGES      - file pairs that almost always change together
3. REVIEW FINDINGS - review findings with no rule yet that keep coming back

``learn_patterns`` is the orchestrator that reads the corpus and turns
analysis results into LearnedPattern records. Persisting them is up to the
caller.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from memoria.models import Commit, LearnedPattern, Review
from memoria.store import DocumentStore

logger = logging.getLogger(__name__)

FIX_PREFIX = "fix:"
FIX_CONFIDENCE = 0.6
DEFAULT_CO_CHANGE_THRESHOLD = 0.7
DEFAULT_MIN_OCCURRENCES = 3
REVIEWS_KIND = "reviews"


@dataclass
class CoChange:
    """Two files that changed together in at least ``rate`` of their commits."""
    files: tuple[str, str]
    rate: float

    def to_dict(self) -> dict[str, Any]:
        return {"files": list(self.files), "rate": self.rate}


@dataclass
class ReviewCandidate:
    """A normalized finding title and how often it was raised."""
    text: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "count": self.count}


def _as_commit(commit: Commit | Mapping[str, Any]) -> Commit:
    return commit if isinstance(commit, Commit) else Commit.model_validate(commit)


def _as_review(review: Review | Mapping[str, Any]) -> Review:
    if isinstance(review, Review):
        return review
    try:
        return Review.model_validate(review)
    except ValidationError:
        return Review()


def parse_fix_commit(commit: Commit | Mapping[str, Any]) -> LearnedPattern | None:
    """Turn a ``fix:`` commit into an error-solution pattern.

    The prefix match is case-insensitive. Non-fix commits return None.
    """
    commit = _as_commit(commit)
    message = commit.message.strip()
    if not message.lower().startswith(FIX_PREFIX):
        return None

    error_pattern = message[len(FIX_PREFIX):].strip()
    return LearnedPattern(
        type="error-solution",
        source="git-commit",
        confidence=FIX_CONFIDENCE,
        data={
            "errorPattern": error_pattern,
            "relatedFiles": list(commit.files),
            "commitHash": commit.hash,
        },
    )


def detect_co_changes(
    commits: Iterable[Commit | Mapping[str, Any]],
    threshold: float = DEFAULT_CO_CHANGE_THRESHOLD,
) -> list[CoChange]:
    """Find file pairs whose co-change rate reaches ``threshold``.

    rate = commits touching both / commits touching the busier of the two.
    Files are deduplicated and sorted per commit, so each unordered pair is
    counted once per commit under a single canonical key.
    """
    file_counts: Counter[str] = Counter()
    pair_counts: Counter[tuple[str, str]] = Counter()

    for commit in commits:
        files = sorted(set(_as_commit(commit).files))
        file_counts.update(files)
        pair_counts.update(combinations(files, 2))

    results = []
    for (file_a, file_b), count in pair_counts.items():
        max_count = max(file_counts[file_a], file_counts[file_b])
        if max_count == 0:
            continue
        rate = count / max_count
        if rate >= threshold:
            results.append(CoChange(files=(file_a, file_b), rate=rate))
    return results


def aggregate_review_findings(
    reviews: Iterable[Review | Mapping[str, Any]],
    min_occurrences: int = DEFAULT_MIN_OCCURRENCES,
) -> list[ReviewCandidate]:
    """Count recurring review findings that no rule covers yet.

    Findings with a ``ruleId`` are already codified and are skipped. Titles
    are grouped case-insensitively after trimming.
    """
    counts: Counter[str] = Counter()
    for review in reviews:
        for finding in _as_review(review).findings:
            if finding.ruleId:
                continue
            counts[finding.title.lower().strip()] += 1

    return [
        ReviewCandidate(text=text, count=count)
        for text, count in counts.items()
        if count >= min_occurrences
    ]


def load_reviews(store: DocumentStore) -> list[Review]:
    """Every review document, with malformed ones reduced to no findings."""
    return [_as_review(doc) for doc in store.list(REVIEWS_KIND)]


def learn_patterns(
    root: Path | str | DocumentStore,
    analyze_commits: bool = True,
    analyze_reviews: bool = True,
    analyze_co_changes: bool = True,
    min_occurrences: int = DEFAULT_MIN_OCCURRENCES,
) -> list[LearnedPattern]:
    """Run pattern learning over the corpus at ``root``.

    Only review analysis has a data source today. ``analyze_commits`` and
    ``analyze_co_changes`` are accepted but no commit history is read, so
    they produce nothing.

    ``min_occurrences`` can raise the bar for rule candidates but never
    lowers it below ``DEFAULT_MIN_OCCURRENCES``.
    """
    store = root if isinstance(root, DocumentStore) else DocumentStore(root)
    patterns: list[LearnedPattern] = []

    if analyze_reviews:
        threshold = max(min_occurrences, DEFAULT_MIN_OCCURRENCES)
        candidates = aggregate_review_findings(load_reviews(store), threshold)
        for candidate in candidates:
            patterns.append(LearnedPattern(
                type="rule-candidate",
                source="review",
                confidence=min(candidate.count / 10, 1.0),
                data={"text": candidate.text, "occurrences": candidate.count},
            ))

    if analyze_commits or analyze_co_changes:
        logger.debug("Commit and co-change analysis requested but no commit source is configured")

    logger.info(f"Learned {len(patterns)} patterns from {store.root}")
    return patterns
