"""Service layer for openFDA drug information operations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from .. import config
from ..cache import CacheStore, get_cache_store
from ..classifier import SUGGESTIONS, ErrorCategory
from ..errors import ClassifiedError
from ..models.records import (
    AdverseEventReport,
    LabelRecord,
    RecallRecord,
    ShortageRecord,
    dump_record,
    parse_records,
)
from ..openfda_client import OpenFDAClient, get_openfda_client
from ..ranking import RelevanceScorer
from ..strategies import (
    ADVERSE_EVENT_STRATEGY,
    RECALL_STRATEGY,
    SERIOUS_ADVERSE_EVENT_STRATEGY,
    SHORTAGE_STRATEGY,
    TREND_STRATEGY,
    NoData,
    SearchStrategy,
    StrategyHit,
    label_strategy,
    resolve_strategies,
)
from ..summaries import (
    analyze_shortage_trends,
    assess_risk,
    extract_label_sections,
    summarize_adverse_events,
    summarize_batch,
    summarize_recalls,
    summarize_shortages,
)
from ..validation import DEFAULT_IDENTIFIER_TYPE

logger = logging.getLogger(__name__)

DATA_SOURCES = {
    "shortages": "FDA Drug Shortages Database",
    "label": "FDA Drug Label Database",
    "enforcement": "FDA Drug Enforcement Database",
    "event": "FDA Adverse Event Reporting System (FAERS)",
}

BATCH_SHORTAGE_LIMIT = 10
BATCH_RECALL_LIMIT = 5
BATCH_TREND_MONTHS = 6
PROFILE_SHORTAGE_LIMIT = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DrugInformationService:
    """Resilient query operations over the openFDA drug endpoints.

    Every operation checks the cache first, walks its search strategies on a
    miss and stores successful (including no-data) results under its cache
    category. Upstream failures surface as ``ClassifiedError`` and are never
    cached.
    """

    def __init__(
        self,
        client: OpenFDAClient | None = None,
        cache: CacheStore | None = None,
        scorer: RelevanceScorer | None = None,
        now: Callable[[], datetime] = _utcnow,
        batch_concurrency: int = config.BATCH_CONCURRENCY,
    ):
        self.client = client or get_openfda_client()
        self.cache = cache if cache is not None else get_cache_store()
        self.scorer = scorer or RelevanceScorer()
        self._now = now
        self.batch_concurrency = batch_concurrency

    async def _cached(
        self,
        operation: str,
        arguments: dict[str, Any],
        category: str,
        compute: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        key = self.cache.make_key(operation, arguments)
        cached = self.cache.get(key, category)
        if cached is not None:
            logger.debug(f"Cache hit for {operation} {arguments}")
            return cached

        result = await compute()
        self.cache.put(key, result, category)
        return result

    async def _resolve(
        self, strategy: SearchStrategy, endpoint_key: str, term: str, limit: int
    ) -> StrategyHit | NoData:
        async def fetch(query: str) -> dict[str, Any]:
            return await self.client.query(endpoint_key, query, limit)

        return await resolve_strategies(strategy.render(term), fetch)

    def _envelope(
        self,
        term: str,
        hit: StrategyHit,
        endpoint_key: str,
        results: list[dict[str, Any]],
        summary: dict[str, Any],
    ) -> dict[str, Any]:
        return {
            "status": "success",
            "search_term": term,
            "search_strategy": hit.query,
            "strategy_index": hit.index,
            "strategies_attempted": list(hit.attempted),
            "data_source": DATA_SOURCES[endpoint_key],
            "api_endpoint": config.ENDPOINTS[endpoint_key],
            "retrieved_at": self._now().isoformat(),
            "total_available": hit.total,
            "summary": summary,
            "results": results,
        }

    def _no_data(
        self, term: str, outcome: NoData, endpoint_key: str, what: str
    ) -> dict[str, Any]:
        return {
            "status": "no_data",
            "search_term": term,
            "message": f'No {what} found for "{term}"',
            "search_strategies_tried": list(outcome.attempted),
            "suggestions": list(SUGGESTIONS[ErrorCategory.NOT_FOUND]),
            "data_source": DATA_SOURCES[endpoint_key],
            "api_endpoint": config.ENDPOINTS[endpoint_key],
            "retrieved_at": self._now().isoformat(),
            "total_available": 0,
            "results": [],
        }

    async def search_drug_shortages(
        self, drug_name: str, limit: int = config.DEFAULT_LIMIT
    ) -> dict[str, Any]:
        """Search shortages, ranking a candidate pool by relevance to ``drug_name``.

        Args:
            drug_name: Validated medication name
            limit: Maximum number of ranked records to return

        Returns:
            Success envelope with scored results, or a no-data envelope
        """

        async def compute() -> dict[str, Any]:
            pool = max(limit, config.SHORTAGE_CANDIDATE_POOL)
            outcome = await self._resolve(SHORTAGE_STRATEGY, "shortages", drug_name, pool)
            if isinstance(outcome, NoData):
                return self._no_data(drug_name, outcome, "shortages", "shortages")

            records = parse_records(outcome.results, ShortageRecord)
            ranked = self.scorer.rank(records, drug_name, limit)
            results = [
                {**dump_record(item.record), "relevance_score": item.score}
                for item in ranked
            ]
            summary = summarize_shortages([item.record for item in ranked])
            summary["candidates_considered"] = len(records)
            return self._envelope(drug_name, outcome, "shortages", results, summary)

        return await self._cached(
            "search_drug_shortages",
            {"drug_name": drug_name, "limit": limit},
            "shortages",
            compute,
        )

    async def get_drug_label_info(
        self, drug_identifier: str, identifier_type: str = DEFAULT_IDENTIFIER_TYPE
    ) -> dict[str, Any]:
        """Fetch the product label, starting from the requested identifier field."""

        async def compute() -> dict[str, Any]:
            outcome = await self._resolve(
                label_strategy(identifier_type), "label", drug_identifier, 1
            )
            if isinstance(outcome, NoData):
                result = self._no_data(drug_identifier, outcome, "label", "label information")
            else:
                labels = parse_records(outcome.results, LabelRecord)
                summary = extract_label_sections(labels[0]) if labels else {}
                result = self._envelope(
                    drug_identifier,
                    outcome,
                    "label",
                    [dump_record(label) for label in labels],
                    summary,
                )
            result["identifier_type"] = identifier_type
            return result

        return await self._cached(
            "get_drug_label_info",
            {"drug_identifier": drug_identifier, "identifier_type": identifier_type},
            "labels",
            compute,
        )

    async def search_drug_recalls(
        self, drug_name: str, limit: int = config.DEFAULT_LIMIT
    ) -> dict[str, Any]:
        async def compute() -> dict[str, Any]:
            outcome = await self._resolve(RECALL_STRATEGY, "enforcement", drug_name, limit)
            if isinstance(outcome, NoData):
                return self._no_data(drug_name, outcome, "enforcement", "recalls")

            records = parse_records(outcome.results, RecallRecord)
            return self._envelope(
                drug_name,
                outcome,
                "enforcement",
                [dump_record(r) for r in records],
                summarize_recalls(records),
            )

        return await self._cached(
            "search_drug_recalls",
            {"drug_name": drug_name, "limit": limit},
            "recalls",
            compute,
        )

    async def analyze_drug_shortage_trends(
        self, drug_name: str, months_back: int = config.DEFAULT_MONTHS_BACK
    ) -> dict[str, Any]:
        """Analyze shortage postings for ``drug_name`` over the last ``months_back`` months."""

        async def compute() -> dict[str, Any]:
            outcome = await self._resolve(
                TREND_STRATEGY, "shortages", drug_name, config.TREND_FETCH_LIMIT
            )
            if isinstance(outcome, NoData):
                result = self._no_data(drug_name, outcome, "shortages", "shortage history")
                result["analysis_period_months"] = months_back
                return result

            records = parse_records(outcome.results, ShortageRecord)
            analysis = analyze_shortage_trends(records, months_back, now=self._now())
            return self._envelope(
                drug_name,
                outcome,
                "shortages",
                [dump_record(r) for r in records],
                analysis,
            )

        return await self._cached(
            "analyze_drug_shortage_trends",
            {"drug_name": drug_name, "months_back": months_back},
            "shortages",
            compute,
        )

    @staticmethod
    def _condense_report(report: AdverseEventReport) -> dict[str, Any]:
        patient = report.patient
        drugs = []
        if patient is not None:
            drugs = [
                d["medicinalproduct"] for d in patient.drug if d.get("medicinalproduct")
            ]
        return {
            "safetyreportid": report.safetyreportid,
            "receivedate": report.receivedate,
            "serious": report.is_serious,
            "reactions": [
                {"term": r.reactionmeddrapt, "outcome": r.reactionoutcome}
                for r in (patient.reaction if patient else [])
                if r.reactionmeddrapt
            ],
            "patient_sex": patient.patientsex if patient else None,
            "drugs": drugs,
        }

    async def _adverse_events(
        self, drug_name: str, limit: int, strategy: SearchStrategy, what: str
    ) -> dict[str, Any]:
        outcome = await self._resolve(strategy, "event", drug_name, limit)
        if isinstance(outcome, NoData):
            return self._no_data(drug_name, outcome, "event", what)

        reports = parse_records(outcome.results, AdverseEventReport)
        return self._envelope(
            drug_name,
            outcome,
            "event",
            [self._condense_report(r) for r in reports],
            summarize_adverse_events(reports),
        )

    async def search_adverse_events(
        self, drug_name: str, limit: int = config.DEFAULT_ADVERSE_EVENT_LIMIT
    ) -> dict[str, Any]:
        return await self._cached(
            "search_adverse_events",
            {"drug_name": drug_name, "limit": limit},
            "adverse_events",
            lambda: self._adverse_events(
                drug_name, limit, ADVERSE_EVENT_STRATEGY, "adverse event reports"
            ),
        )

    async def search_serious_adverse_events(
        self, drug_name: str, limit: int = config.DEFAULT_ADVERSE_EVENT_LIMIT
    ) -> dict[str, Any]:
        return await self._cached(
            "search_serious_adverse_events",
            {"drug_name": drug_name, "limit": limit},
            "serious_adverse_events",
            lambda: self._adverse_events(
                drug_name,
                limit,
                SERIOUS_ADVERSE_EVENT_STRATEGY,
                "serious adverse event reports",
            ),
        )

    async def get_medication_profile(
        self, drug_identifier: str, identifier_type: str = DEFAULT_IDENTIFIER_TYPE
    ) -> dict[str, Any]:
        """
        Combine label information with the current shortage picture.

        Shortages are searched under the label's first generic name when the
        label lookup finds one, otherwise under ``drug_identifier``. A failure
        in one component is reported inside the profile; if both fail the
        label failure is raised.
        """
        label: dict[str, Any] | None = None
        label_error: ClassifiedError | None = None
        try:
            label = await self.get_drug_label_info(drug_identifier, identifier_type)
        except ClassifiedError as e:
            label_error = e

        shortage_term = drug_identifier
        if label and label.get("status") == "success":
            generic_names = label.get("summary", {}).get("generic_name") or []
            if generic_names:
                shortage_term = generic_names[0]

        shortages: dict[str, Any] | None = None
        try:
            shortages = await self.search_drug_shortages(shortage_term, PROFILE_SHORTAGE_LIMIT)
        except ClassifiedError as e:
            if label_error is not None:
                raise label_error from e
            shortage_error = e
        else:
            shortage_error = None

        has_label = label is not None and label.get("status") == "success"
        has_shortages = shortages is not None and shortages.get("status") == "success"
        if label_error is not None:
            overall = "Retrieved shortage information but the label lookup failed"
        elif shortage_error is not None:
            overall = "Retrieved label information but the shortage lookup failed"
        elif has_label and has_shortages:
            overall = "Label found; shortage records found"
        elif has_label:
            overall = "Label found; no shortage records found"
        elif has_shortages:
            overall = "No label found; shortage records found"
        else:
            overall = "No label or shortage records found"

        return {
            "drug_identifier": drug_identifier,
            "identifier_type": identifier_type,
            "shortage_search_term": shortage_term,
            "overall_status": overall,
            "label_information": label if label is not None else label_error.to_dict(),
            "shortage_information": (
                shortages if shortages is not None else shortage_error.to_dict()
            ),
            "retrieved_at": self._now().isoformat(),
        }

    async def _analyze_one(
        self, drug: str, include_trends: bool, semaphore: asyncio.Semaphore
    ) -> dict[str, Any]:
        entry: dict[str, Any] = {"drug_name": drug}
        errors: dict[str, Any] = {}

        async with semaphore:
            try:
                shortages = await self.search_drug_shortages(drug, BATCH_SHORTAGE_LIMIT)
                entry["shortage_data"] = shortages
                entry["active_shortages"] = shortages.get("summary", {}).get(
                    "active_shortages", 0
                )
            except ClassifiedError as e:
                errors["shortages"] = e.to_dict()
                entry["active_shortages"] = None

            try:
                recalls = await self.search_drug_recalls(drug, BATCH_RECALL_LIMIT)
                entry["recall_data"] = recalls
                entry["recall_count"] = len(recalls["results"])
            except ClassifiedError as e:
                errors["recalls"] = e.to_dict()
                entry["recall_count"] = None

            if include_trends:
                try:
                    entry["trend_data"] = await self.analyze_drug_shortage_trends(
                        drug, BATCH_TREND_MONTHS
                    )
                except ClassifiedError as e:
                    errors["trends"] = e.to_dict()

        entry["risk_level"] = assess_risk(entry["active_shortages"], entry["recall_count"])
        if errors:
            logger.warning(f"Batch analysis for {drug} had failures: {sorted(errors)}")
            entry["errors"] = errors
        return entry

    async def batch_drug_analysis(
        self, drug_list: list[str], include_trends: bool = False
    ) -> dict[str, Any]:
        """
        Analyze shortages and recalls (and optionally trends) for several drugs.

        Drugs are processed concurrently, bounded by ``batch_concurrency``.
        Per-drug upstream failures are recorded in that drug's entry and never
        fail the batch. Results keep the order of ``drug_list``.
        """
        semaphore = asyncio.Semaphore(self.batch_concurrency)
        analyses = await asyncio.gather(
            *(self._analyze_one(drug, include_trends, semaphore) for drug in drug_list)
        )
        return {
            "batch_info": {
                "total_drugs": len(drug_list),
                "include_trends": include_trends,
                "retrieved_at": self._now().isoformat(),
            },
            "batch_summary": summarize_batch(analyses),
            "drug_analyses": list(analyses),
        }
