"""Tests for record summarization."""

from datetime import datetime, timezone

import pytest

from openfda_mcp.models.records import (
    AdverseEventReport,
    LabelRecord,
    RecallRecord,
    ShortageRecord,
    parse_records,
)
from openfda_mcp.summaries import (
    analyze_shortage_trends,
    assess_risk,
    extract_label_sections,
    parse_date,
    summarize_adverse_events,
    summarize_batch,
    summarize_recalls,
    summarize_shortages,
)

NOW = datetime(2024, 6, 15, tzinfo=timezone.utc)


def shortage(**fields):
    return ShortageRecord.model_validate(fields)


class TestParseDate:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("20240105", datetime(2024, 1, 5, tzinfo=timezone.utc)),
            ("2024-01-05", datetime(2024, 1, 5, tzinfo=timezone.utc)),
            ("01/05/2024", datetime(2024, 1, 5, tzinfo=timezone.utc)),
        ],
    )
    def test_formats(self, value, expected):
        assert parse_date(value) == expected

    def test_unparseable(self):
        assert parse_date("last tuesday") is None
        assert parse_date(None) is None
        assert parse_date("") is None


def test_summarize_shortages():
    records = [
        shortage(status="Current", company_name="Pfizer"),
        shortage(status="Resolved", company_name="Bayer"),
        shortage(status="Current", company_name="Pfizer"),
        shortage(),
    ]
    summary = summarize_shortages(records)
    assert summary["total_records"] == 4
    assert summary["active_shortages"] == 2
    assert summary["status_breakdown"] == {"Current": 2, "Resolved": 1, "Unknown": 1}
    assert summary["companies"] == ["Bayer", "Pfizer"]


class TestShortageTrends:
    def test_timeline_and_direction(self):
        records = [
            shortage(initial_posting_date="20240501", status="Current"),
            shortage(initial_posting_date="20240310", status="Resolved"),
            shortage(initial_posting_date="20231115", status="Resolved"),
            shortage(initial_posting_date="20230101", status="Current"),
            shortage(status="Current"),
            shortage(update_date="2024-06-01", status="Current"),
        ]

        result = analyze_shortage_trends(records, months_back=12, now=NOW)

        assert result["analysis_period_months"] == 12
        assert result["total_shortage_events"] == 4
        assert result["active_shortages"] == 2
        assert result["undated_records"] == 1
        assert result["monthly_timeline"] == {
            "2023-11": 1,
            "2024-03": 1,
            "2024-05": 1,
            "2024-06": 1,
        }
        assert result["trend_direction"] == "increasing"
        assert "4 shortage events" in result["trend_summary"]

    def test_decreasing(self):
        records = [
            shortage(initial_posting_date="20231001"),
            shortage(initial_posting_date="20231201"),
            shortage(initial_posting_date="20240401"),
        ]
        result = analyze_shortage_trends(records, months_back=12, now=NOW)
        assert result["trend_direction"] == "decreasing"

    def test_stable(self):
        records = [
            shortage(initial_posting_date="20231001"),
            shortage(initial_posting_date="20240401"),
        ]
        result = analyze_shortage_trends(records, months_back=12, now=NOW)
        assert result["trend_direction"] == "stable"

    def test_no_dated_records(self):
        result = analyze_shortage_trends([shortage(status="Current")], months_back=6, now=NOW)
        assert result["total_shortage_events"] == 0
        assert result["trend_direction"] == "insufficient_data"
        assert result["monthly_timeline"] == {}
        assert result["trend_summary"] == "No dated shortage events in the last 6 months"

    def test_future_dates_ignored(self):
        result = analyze_shortage_trends(
            [shortage(initial_posting_date="20250101")], months_back=12, now=NOW
        )
        assert result["total_shortage_events"] == 0


def test_summarize_recalls():
    records = [
        RecallRecord.model_validate({"classification": "Class I", "status": "Ongoing", "report_date": "20240110"}),
        RecallRecord.model_validate({"classification": "Class II", "status": "Terminated", "report_date": "20240320"}),
        RecallRecord.model_validate({"classification": "Class I", "status": "Ongoing"}),
    ]
    summary = summarize_recalls(records)
    assert summary["total_records"] == 3
    assert summary["class_i_recalls"] == 2
    assert summary["classification_breakdown"] == {"Class I": 2, "Class II": 1}
    assert summary["most_recent_report"] == "2024-03-20"


def test_summarize_recalls_without_dates():
    assert summarize_recalls([])["most_recent_report"] is None


def test_summarize_adverse_events():
    reports = [
        AdverseEventReport.model_validate(
            {
                "serious": "1",
                "seriousnesshospitalization": "1",
                "patient": {
                    "patientsex": "2",
                    "reaction": [
                        {"reactionmeddrapt": "Nausea"},
                        {"reactionmeddrapt": "nausea"},
                        {"reactionmeddrapt": "Headache"},
                    ],
                },
            }
        ),
        AdverseEventReport.model_validate(
            {
                "serious": "2",
                "patient": {"patientsex": "1", "reaction": [{"reactionmeddrapt": "Nausea"}]},
            }
        ),
        AdverseEventReport.model_validate({"serious": "2"}),
    ]

    summary = summarize_adverse_events(reports)

    assert summary["total_reports"] == 3
    assert summary["serious_reports"] == 1
    assert summary["serious_percentage"] == 33
    assert summary["common_reactions"][0] == {"reaction": "NAUSEA", "frequency": 2, "percentage": 67}
    assert summary["seriousness_outcomes"] == {"hospitalization": 1}
    assert summary["patient_sex"] == {"female": 1, "male": 1, "unknown": 1}


def test_summarize_adverse_events_empty():
    summary = summarize_adverse_events([])
    assert summary["total_reports"] == 0
    assert summary["serious_percentage"] == 0
    assert summary["common_reactions"] == []


def test_extract_label_sections_truncates_long_text():
    label = LabelRecord.model_validate(
        {
            "indications_and_usage": ["word " * 400],
            "boxed_warning": "Bleeding risk.",
            "openfda": {"generic_name": ["WARFARIN SODIUM"], "brand_name": "Coumadin"},
        }
    )

    result = extract_label_sections(label)

    assert result["generic_name"] == ["WARFARIN SODIUM"]
    assert result["brand_name"] == ["Coumadin"]
    assert result["has_boxed_warning"] is True
    assert result["available_sections"] == ["boxed_warning", "indications_and_usage"]
    indications = result["key_sections"]["indications_and_usage"]
    assert len(indications) <= 1000
    assert indications.endswith("...")


def test_extract_label_sections_without_openfda_block():
    result = extract_label_sections(LabelRecord.model_validate({"warnings": ["Keep away"]}))
    assert result["generic_name"] == []
    assert result["key_sections"] == {"warnings": "Keep away"}


@pytest.mark.parametrize(
    "active,recalls,expected",
    [
        (None, None, "unknown"),
        (1, 1, "high"),
        (3, 0, "high"),
        (1, 0, "moderate"),
        (0, 2, "moderate"),
        (None, 1, "moderate"),
        (0, 0, "low"),
    ],
)
def test_assess_risk(active, recalls, expected):
    assert assess_risk(active, recalls) == expected


def test_summarize_batch():
    summary = summarize_batch(
        [
            {"risk_level": "high", "active_shortages": 2, "recall_count": 1, "errors": []},
            {"risk_level": "low", "active_shortages": 0, "recall_count": 0, "errors": []},
            {"risk_level": "unknown", "active_shortages": None, "recall_count": None, "errors": ["x"]},
        ]
    )
    assert summary["total_drugs_analyzed"] == 3
    assert summary["drugs_with_shortages"] == 1
    assert summary["drugs_with_recalls"] == 1
    assert summary["drugs_with_errors"] == 1
    assert summary["high_risk_drugs"] == 1


def test_reports_with_scalar_reaction_fields_still_parse():
    reports = parse_records(
        [
            {"safetyreportid": "bad", "patient": {"reaction": 5, "drug": "WARFARIN"}},
            {"safetyreportid": "good", "patient": {"reaction": [{"reactionmeddrapt": "Rash"}]}},
        ],
        AdverseEventReport,
    )

    assert [r.safetyreportid for r in reports] == ["bad", "good"]
    assert reports[0].reactions == []
    assert reports[0].patient.drug == []
    assert reports[1].reactions == ["Rash"]
