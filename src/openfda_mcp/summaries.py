"""
Summarization passes over validated openFDA records.

All functions here are pure: they take parsed records (and, for trends, a
reference time) and return JSON-ready dictionaries. They never assume nested
fields are present.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from .models.records import (
    AdverseEventReport,
    LabelRecord,
    RecallRecord,
    ShortageRecord,
)
from .ranking import ACTIVE_STATUSES

# openFDA uses several date layouts across endpoints
_DATE_FORMATS = ("%Y%m%d", "%Y-%m-%d", "%m/%d/%Y", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%dT%H:%M:%SZ")

LABEL_SECTIONS = (
    "boxed_warning",
    "indications_and_usage",
    "dosage_and_administration",
    "contraindications",
    "warnings_and_cautions",
    "warnings",
    "adverse_reactions",
    "drug_interactions",
)
SECTION_PREVIEW_CHARS = 1000
TOP_REACTIONS = 10

SERIOUSNESS_FLAGS = {
    "death": "seriousnessdeath",
    "hospitalization": "seriousnesshospitalization",
    "life_threatening": "seriousnesslifethreatening",
    "disabling": "seriousnessdisabling",
    "congenital_anomaly": "seriousnesscongenitalanomali",
    "other": "seriousnessother",
}

_SEX_CODES = {"0": "unknown", "1": "male", "2": "female"}


def parse_date(value: str | None) -> datetime | None:
    """Parse an openFDA date string; returns None when unparseable."""
    if not value:
        return None
    value = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def months_between(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def is_active_shortage(record: ShortageRecord) -> bool:
    return bool(record.status) and record.status.strip().lower() in ACTIVE_STATUSES


def summarize_shortages(records: Sequence[ShortageRecord]) -> dict[str, Any]:
    statuses = Counter((r.status or "Unknown") for r in records)
    companies = sorted({r.company_name for r in records if r.company_name})
    return {
        "total_records": len(records),
        "active_shortages": sum(1 for r in records if is_active_shortage(r)),
        "status_breakdown": dict(statuses.most_common()),
        "companies": companies,
    }


def _trend_direction(first_half: int, second_half: int) -> str:
    if first_half == 0 and second_half == 0:
        return "insufficient_data"
    if second_half > first_half:
        return "increasing"
    if second_half < first_half:
        return "decreasing"
    return "stable"


def analyze_shortage_trends(
    records: Sequence[ShortageRecord],
    months_back: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Bucket shortage postings into a monthly timeline over ``months_back``.

    A record's event date is its initial posting date, falling back to its
    last update. Records without a parseable date are counted separately.
    The trend compares the older half of the window against the newer half.

    Args:
        records: Validated shortage records
        months_back: Window size in months
        now: Reference time (defaults to the current UTC time)

    Returns:
        Timeline, counts, trend direction and a textual summary
    """
    now = now or datetime.now(timezone.utc)
    timeline: Counter[str] = Counter()
    in_window: list[ShortageRecord] = []
    undated = 0
    first_half = second_half = 0
    midpoint = months_back / 2

    for record in records:
        event_date = parse_date(record.initial_posting_date) or parse_date(record.update_date)
        if event_date is None:
            undated += 1
            continue
        age = months_between(event_date, now)
        if age < 0 or age >= months_back:
            continue
        in_window.append(record)
        timeline[event_date.strftime("%Y-%m")] += 1
        if age >= midpoint:
            first_half += 1
        else:
            second_half += 1

    direction = _trend_direction(first_half, second_half)
    active = sum(1 for r in in_window if is_active_shortage(r))
    if in_window:
        summary = (
            f"{len(in_window)} shortage events in the last {months_back} months "
            f"({active} currently active); trend is {direction.replace('_', ' ')}"
        )
    else:
        summary = f"No dated shortage events in the last {months_back} months"

    return {
        "analysis_period_months": months_back,
        "total_shortage_events": len(in_window),
        "active_shortages": active,
        "undated_records": undated,
        "monthly_timeline": dict(sorted(timeline.items())),
        "trend_direction": direction,
        "trend_summary": summary,
        "status_breakdown": dict(Counter((r.status or "Unknown") for r in in_window).most_common()),
    }


def summarize_recalls(records: Sequence[RecallRecord]) -> dict[str, Any]:
    classifications = Counter((r.classification or "Unclassified") for r in records)
    statuses = Counter((r.status or "Unknown") for r in records)
    dates = [d for d in (parse_date(r.report_date) for r in records) if d is not None]
    return {
        "total_records": len(records),
        "classification_breakdown": dict(classifications.most_common()),
        "status_breakdown": dict(statuses.most_common()),
        "class_i_recalls": classifications.get("Class I", 0),
        "most_recent_report": max(dates).date().isoformat() if dates else None,
    }


def summarize_adverse_events(reports: Sequence[AdverseEventReport]) -> dict[str, Any]:
    total = len(reports)
    reactions: Counter[str] = Counter()
    sexes: Counter[str] = Counter()
    outcomes: Counter[str] = Counter()

    for report in reports:
        # Count each reaction term once per report
        reactions.update({term.strip().upper() for term in report.reactions if term.strip()})
        if report.patient is not None:
            sexes[_SEX_CODES.get(report.patient.patientsex or "0", "unknown")] += 1
        else:
            sexes["unknown"] += 1
        for label, field_name in SERIOUSNESS_FLAGS.items():
            if getattr(report, field_name) == "1":
                outcomes[label] += 1

    serious = sum(1 for r in reports if r.is_serious)
    return {
        "total_reports": total,
        "serious_reports": serious,
        "serious_percentage": round(serious / total * 100) if total else 0,
        "common_reactions": [
            {
                "reaction": reaction,
                "frequency": count,
                "percentage": round(count / total * 100),
            }
            for reaction, count in reactions.most_common(TOP_REACTIONS)
        ],
        "seriousness_outcomes": dict(outcomes.most_common()),
        "patient_sex": dict(sexes.most_common()),
    }


def _preview(blocks: list[str]) -> str | None:
    if not blocks:
        return None
    text = " ".join(block.strip() for block in blocks if block)
    if len(text) > SECTION_PREVIEW_CHARS:
        return text[: SECTION_PREVIEW_CHARS - 3].rsplit(" ", 1)[0] + "..."
    return text


def extract_label_sections(label: LabelRecord) -> dict[str, Any]:
    """Key label sections, truncated for readability, plus product identity."""
    sections = {}
    for name in LABEL_SECTIONS:
        preview = _preview(getattr(label, name))
        if preview:
            sections[name] = preview

    openfda = label.openfda
    return {
        "generic_name": openfda.generic_name if openfda else [],
        "brand_name": openfda.brand_name if openfda else [],
        "manufacturer_name": openfda.manufacturer_name if openfda else [],
        "route": openfda.route if openfda else [],
        "has_boxed_warning": bool(label.boxed_warning),
        "effective_time": label.effective_time,
        "available_sections": list(sections),
        "key_sections": sections,
    }


def assess_risk(active_shortages: int | None, recall_count: int | None) -> str:
    """
    Coarse supply risk for one drug.

    ``high``: an active shortage together with a recall, or three or more
    active shortages. ``moderate``: any active shortage or recall. ``low``:
    neither. ``unknown``: both lookups failed.
    """
    if active_shortages is None and recall_count is None:
        return "unknown"
    active_shortages = active_shortages or 0
    recall_count = recall_count or 0
    if (active_shortages and recall_count) or active_shortages >= 3:
        return "high"
    if active_shortages or recall_count:
        return "moderate"
    return "low"


def summarize_batch(analyses: Sequence[dict[str, Any]]) -> dict[str, Any]:
    levels = Counter(a.get("risk_level", "unknown") for a in analyses)
    return {
        "total_drugs_analyzed": len(analyses),
        "drugs_with_shortages": sum(1 for a in analyses if a.get("active_shortages")),
        "drugs_with_recalls": sum(1 for a in analyses if a.get("recall_count")),
        "drugs_with_errors": sum(1 for a in analyses if a.get("errors")),
        "high_risk_drugs": levels.get("high", 0),
        "risk_distribution": dict(levels.most_common()),
    }
