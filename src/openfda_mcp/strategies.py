"""Ordered fallback search strategies.

Each logical operation owns a ``SearchStrategy``: a fixed, prioritized tuple
of openFDA ``search`` templates. The resolver walks the rendered queries in
order and stops at the first one that returns at least one record.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

QueryFetch = Callable[[str], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class SearchStrategy:
    """Prioritized query templates for one operation; ``{term}`` is substituted."""

    name: str
    templates: tuple[str, ...]
    suffix: str = ""

    def render(self, term: str) -> list[str]:
        return [template.format(term=term) + self.suffix for template in self.templates]


@dataclass(frozen=True)
class StrategyHit:
    """First strategy that produced records."""

    query: str
    index: int
    payload: dict[str, Any]
    attempted: tuple[str, ...] = field(default_factory=tuple)

    @property
    def results(self) -> list[Any]:
        return self.payload.get("results") or []

    @property
    def total(self) -> int:
        meta = self.payload.get("meta") or {}
        total = (meta.get("results") or {}).get("total")
        return total if isinstance(total, int) else len(self.results)


@dataclass(frozen=True)
class NoData:
    """Every strategy came back empty. Not an error."""

    attempted: tuple[str, ...]


async def resolve_strategies(
    queries: Sequence[str], fetch: QueryFetch
) -> StrategyHit | NoData:
    """Try ``queries`` in order, returning the first non-empty result.

    Later queries are never issued once one succeeds, and results are never
    merged across queries. Errors raised by ``fetch`` propagate unchanged.
    """
    attempted: list[str] = []
    for index, query in enumerate(queries):
        attempted.append(query)
        payload = await fetch(query)
        results = payload.get("results") if isinstance(payload, dict) else None
        if results:
            logger.debug("strategy_hit", query=query, index=index, count=len(results))
            return StrategyHit(
                query=query, index=index, payload=payload, attempted=tuple(attempted)
            )
        logger.debug("strategy_empty", query=query, index=index)

    return NoData(attempted=tuple(attempted))


# Strategy registry for the openFDA drug endpoints
SHORTAGE_STRATEGY = SearchStrategy(
    name="shortages",
    templates=(
        '"{term}"',
        'generic_name:"{term}"',
        'proprietary_name:"{term}"',
        'openfda.generic_name:"{term}"',
        'openfda.brand_name:"{term}"',
    ),
)

TREND_STRATEGY = SearchStrategy(
    name="shortage_trends",
    templates=(
        '"{term}"',
        'generic_name:"{term}"',
        'openfda.generic_name:"{term}"',
    ),
)

RECALL_STRATEGY = SearchStrategy(
    name="recalls",
    templates=(
        'product_description:"{term}"',
        "product_description:{term}",
        'openfda.generic_name:"{term}"',
        'openfda.brand_name:"{term}"',
    ),
)

ADVERSE_EVENT_STRATEGY = SearchStrategy(
    name="adverse_events",
    templates=(
        'patient.drug.medicinalproduct:"{term}"',
        'patient.drug.openfda.generic_name:"{term}"',
        'patient.drug.openfda.brand_name:"{term}"',
    ),
)

SERIOUS_ADVERSE_EVENT_STRATEGY = SearchStrategy(
    name="serious_adverse_events",
    templates=ADVERSE_EVENT_STRATEGY.templates,
    suffix=" AND serious:1",
)

_LABEL_FALLBACKS = {
    "openfda.generic_name": ("openfda.generic_name", "openfda.brand_name", "openfda.substance_name"),
    "openfda.brand_name": ("openfda.brand_name", "openfda.generic_name", "openfda.substance_name"),
}


def label_strategy(identifier_type: str) -> SearchStrategy:
    """Label lookup starting from the requested identifier field."""
    fields = _LABEL_FALLBACKS.get(identifier_type, (identifier_type,))
    return SearchStrategy(
        name="labels",
        templates=tuple(f'{field_name}:"{{term}}"' for field_name in fields),
    )
