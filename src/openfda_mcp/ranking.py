"""Relevance scoring for shortage records."""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from . import config
from .models.records import ShortageRecord

_NON_WORD = re.compile(r"[^a-z0-9]+")

ACTIVE_STATUSES = {"current", "currently in shortage", "active"}


def normalize_term(text: str | None) -> str:
    """Lower-case, NFKC-normalize and collapse punctuation/whitespace to single spaces."""
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", str(text)).lower()
    return _NON_WORD.sub(" ", text).strip()


@dataclass(frozen=True)
class ScoringWeights:
    """Additive weights for shortage relevance. Totals are clamped to [0, 100]."""

    exact_match: float = 100
    substring_match: float = 60
    reverse_containment: float = 40
    active_status: float = 20
    reason_present: float = 10
    availability_present: float = 5

    @classmethod
    def from_config(cls) -> ScoringWeights:
        return cls(**config.SCORING_WEIGHTS)


@dataclass(frozen=True)
class ScoredRecord:
    score: float
    record: ShortageRecord


class RelevanceScorer:
    """Deterministic additive scorer for shortage candidates."""

    def __init__(self, weights: ScoringWeights | None = None):
        self.weights = weights or ScoringWeights.from_config()

    @staticmethod
    def aliases(record: ShortageRecord) -> set[str]:
        names: list[str | None] = [record.generic_name, record.proprietary_name]
        if record.openfda is not None:
            names.extend(record.openfda.generic_name)
            names.extend(record.openfda.brand_name)
            names.extend(record.openfda.substance_name)

        aliases = set()
        for name in names:
            if not name:
                continue
            aliases.add(name.strip().lower())
            normalized = normalize_term(name)
            if normalized:
                aliases.add(normalized)
        return aliases

    def _match_score(self, query_forms: Iterable[str], aliases: set[str]) -> float:
        best = 0.0
        for query in query_forms:
            if not query:
                continue
            for alias in aliases:
                if alias == query:
                    return self.weights.exact_match
                if query in alias:
                    best = max(best, self.weights.substring_match)
                elif alias in query:
                    best = max(best, self.weights.reverse_containment)
        return best

    def score(self, record: ShortageRecord, query: str) -> float:
        query_forms = {query.strip().lower(), normalize_term(query)}
        score = self._match_score(query_forms, self.aliases(record))

        if record.status and record.status.strip().lower() in ACTIVE_STATUSES:
            score += self.weights.active_status
        if record.shortage_reason:
            score += self.weights.reason_present
        if record.availability:
            score += self.weights.availability_present

        return max(0.0, min(100.0, score))

    def rank(
        self, records: Sequence[ShortageRecord], query: str, limit: int
    ) -> list[ScoredRecord]:
        """Score, sort descending and truncate. Ties keep upstream order."""
        scored = [ScoredRecord(self.score(record, query), record) for record in records]
        scored.sort(key=lambda item: item.score, reverse=True)
        return scored[:limit]
