"""Tests for DrugInformationService against a fake upstream."""

import json

import pytest

from openfda_mcp.errors import ClassifiedError

from .conftest import FIXED_NOW, payload

ASPIRIN_RECORDS = [
    {"generic_name": "Aspirin Complex", "status": "Resolved", "company_name": "Bayer"},
    {"generic_name": "Aspirin", "status": "Current", "shortage_reason": "Demand increase"},
    {"generic_name": "Aspirin Low Dose", "status": "Resolved"},
]


class TestSearchDrugShortages:
    @pytest.mark.asyncio
    async def test_first_strategy_hit(self, service, transport):
        transport.add('"aspirin"', payload(*ASPIRIN_RECORDS))

        result = await service.search_drug_shortages("aspirin", 10)

        assert result["status"] == "success"
        assert result["search_strategy"] == '"aspirin"'
        assert result["strategy_index"] == 0
        assert result["data_source"] == "FDA Drug Shortages Database"
        assert result["retrieved_at"] == FIXED_NOW.isoformat()
        assert len(result["results"]) == 3
        assert result["results"][0]["generic_name"] == "Aspirin"
        assert result["results"][0]["relevance_score"] == 100
        assert result["summary"]["active_shortages"] == 1
        assert transport.searches == ['"aspirin"']

    @pytest.mark.asyncio
    async def test_fetches_candidate_pool_then_truncates(self, service, transport):
        transport.add('"aspirin"', payload(*ASPIRIN_RECORDS))

        result = await service.search_drug_shortages("aspirin", 2)

        _, params = transport.calls[0]
        assert params["limit"] == 25
        assert len(result["results"]) == 2
        assert result["summary"]["candidates_considered"] == 3

    @pytest.mark.asyncio
    async def test_later_strategy_used_when_earlier_ones_empty(self, service, transport):
        transport.add('proprietary_name:"tylenol"', payload({"proprietary_name": "Tylenol"}))

        result = await service.search_drug_shortages("tylenol")

        assert result["status"] == "success"
        assert result["strategy_index"] == 2
        assert result["strategies_attempted"] == [
            '"tylenol"',
            'generic_name:"tylenol"',
            'proprietary_name:"tylenol"',
        ]

    @pytest.mark.asyncio
    async def test_no_data_after_all_strategies(self, service, transport):
        result = await service.search_drug_shortages("unobtainium")

        assert result["status"] == "no_data"
        assert result["total_available"] == 0
        assert result["results"] == []
        assert len(result["search_strategies_tried"]) == 5
        assert len(transport.calls) == 5
        assert result["suggestions"]

    @pytest.mark.asyncio
    async def test_repeat_call_served_from_cache(self, service, transport):
        transport.add('"aspirin"', payload(*ASPIRIN_RECORDS))

        first = await service.search_drug_shortages("aspirin", 10)
        second = await service.search_drug_shortages("  ASPIRIN ", 10)

        assert len(transport.calls) == 1
        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)

    @pytest.mark.asyncio
    async def test_cache_expiry_triggers_one_refetch(self, service, transport, clock):
        transport.add('"aspirin"', payload(*ASPIRIN_RECORDS))

        await service.search_drug_shortages("aspirin")
        clock.advance(1801)
        await service.search_drug_shortages("aspirin")
        await service.search_drug_shortages("aspirin")

        assert len(transport.calls) == 2

    @pytest.mark.asyncio
    async def test_no_data_result_is_cached(self, service, transport):
        await service.search_drug_shortages("unobtainium")
        await service.search_drug_shortages("unobtainium")
        assert len(transport.calls) == 5

    @pytest.mark.asyncio
    async def test_upstream_failure_raised_and_not_cached(self, service, transport, sleeps):
        transport.add('"aspirin"', 503)

        with pytest.raises(ClassifiedError) as exc_info:
            await service.search_drug_shortages("aspirin")
        assert exc_info.value.retry_recommended is True
        assert exc_info.value.attempts == 3
        assert sleeps.delays == [30.0, 45.0]

        transport.add('"aspirin"', payload(*ASPIRIN_RECORDS))
        result = await service.search_drug_shortages("aspirin")
        assert result["status"] == "success"

    @pytest.mark.asyncio
    async def test_bad_request_stops_strategy_walk(self, service, transport):
        transport.add('"aspirin"', 400)

        with pytest.raises(ClassifiedError):
            await service.search_drug_shortages("aspirin")

        assert transport.searches == ['"aspirin"']


class TestRecalls:
    @pytest.mark.asyncio
    async def test_recalls_are_never_cached(self, service, transport):
        transport.add(
            'product_description:"metformin"',
            payload(
                {"classification": "Class II", "status": "Ongoing", "report_date": "20240201"},
                {"classification": "Class I", "status": "Terminated", "report_date": "20230915"},
            ),
        )

        first = await service.search_drug_recalls("metformin", 5)
        await service.search_drug_recalls("metformin", 5)

        assert first["status"] == "success"
        assert first["data_source"] == "FDA Drug Enforcement Database"
        assert first["summary"]["class_i_recalls"] == 1
        assert first["summary"]["most_recent_report"] == "2024-02-01"
        assert len(transport.calls) == 2


class TestLabels:
    @pytest.mark.asyncio
    async def test_label_by_brand_name(self, service, transport):
        transport.add(
            'openfda.brand_name:"Lipitor"',
            payload(
                {
                    "indications_and_usage": ["Lowers cholesterol."],
                    "openfda": {"generic_name": ["ATORVASTATIN CALCIUM"], "brand_name": ["LIPITOR"]},
                }
            ),
        )

        result = await service.get_drug_label_info("Lipitor", "openfda.brand_name")

        assert result["status"] == "success"
        assert result["identifier_type"] == "openfda.brand_name"
        assert result["summary"]["generic_name"] == ["ATORVASTATIN CALCIUM"]
        assert transport.calls[0][1]["limit"] == 1

    @pytest.mark.asyncio
    async def test_label_no_data_keeps_identifier_type(self, service):
        result = await service.get_drug_label_info("zzz", "openfda.generic_name")
        assert result["status"] == "no_data"
        assert result["identifier_type"] == "openfda.generic_name"
        assert len(result["search_strategies_tried"]) == 3


class TestTrends:
    @pytest.mark.asyncio
    async def test_trend_analysis_uses_reference_time(self, service, transport):
        transport.add(
            '"cisplatin"',
            payload(
                {"generic_name": "Cisplatin", "initial_posting_date": "20240501", "status": "Current"},
                {"generic_name": "Cisplatin", "initial_posting_date": "20230901", "status": "Resolved"},
            ),
        )

        result = await service.analyze_drug_shortage_trends("cisplatin", 12)

        assert result["status"] == "success"
        assert result["summary"]["total_shortage_events"] == 2
        assert result["summary"]["trend_direction"] == "stable"
        assert transport.calls[0][1]["limit"] == 100

    @pytest.mark.asyncio
    async def test_trend_no_data(self, service):
        result = await service.analyze_drug_shortage_trends("nothing", 6)
        assert result["status"] == "no_data"
        assert result["analysis_period_months"] == 6


class TestAdverseEvents:
    REPORT = {
        "safetyreportid": "1001",
        "receivedate": "20240102",
        "serious": "1",
        "seriousnessdeath": "1",
        "patient": {
            "patientsex": "2",
            "reaction": [{"reactionmeddrapt": "Haemorrhage", "reactionoutcome": "5"}],
            "drug": [{"medicinalproduct": "WARFARIN"}, {"medicinalproduct": "ASPIRIN"}],
        },
    }

    @pytest.mark.asyncio
    async def test_reports_are_condensed(self, service, transport):
        transport.add('patient.drug.medicinalproduct:"warfarin"', payload(self.REPORT))

        result = await service.search_adverse_events("warfarin", 5)

        assert result["status"] == "success"
        report = result["results"][0]
        assert report == {
            "safetyreportid": "1001",
            "receivedate": "20240102",
            "serious": True,
            "reactions": [{"term": "Haemorrhage", "outcome": "5"}],
            "patient_sex": "2",
            "drugs": ["WARFARIN", "ASPIRIN"],
        }
        assert result["summary"]["seriousness_outcomes"] == {"death": 1}

    @pytest.mark.asyncio
    async def test_malformed_reaction_field_does_not_fail_the_search(self, service, transport):
        malformed = {"safetyreportid": "1002", "serious": "2", "patient": {"reaction": 5, "drug": "x"}}
        transport.add('patient.drug.medicinalproduct:"warfarin"', payload(malformed, self.REPORT))

        result = await service.search_adverse_events("warfarin", 5)

        assert result["status"] == "success"
        assert [r["safetyreportid"] for r in result["results"]] == ["1002", "1001"]
        assert result["results"][0]["reactions"] == []

    @pytest.mark.asyncio
    async def test_serious_search_adds_filter_and_skips_cache(self, service, transport):
        transport.add(
            'patient.drug.medicinalproduct:"warfarin" AND serious:1', payload(self.REPORT)
        )

        await service.search_serious_adverse_events("warfarin", 5)
        await service.search_serious_adverse_events("warfarin", 5)

        assert transport.searches == [
            'patient.drug.medicinalproduct:"warfarin" AND serious:1',
            'patient.drug.medicinalproduct:"warfarin" AND serious:1',
        ]

    @pytest.mark.asyncio
    async def test_adverse_events_cached(self, service, transport):
        transport.add('patient.drug.medicinalproduct:"warfarin"', payload(self.REPORT))

        await service.search_adverse_events("warfarin", 5)
        await service.search_adverse_events("warfarin", 5)

        assert len(transport.calls) == 1


class TestMedicationProfile:
    LABEL = {
        "warnings": ["Bleeding risk."],
        "openfda": {"generic_name": ["WARFARIN SODIUM"], "brand_name": ["COUMADIN"]},
    }

    @pytest.mark.asyncio
    async def test_shortages_searched_under_label_generic_name(self, service, transport):
        transport.add('openfda.brand_name:"Coumadin"', payload(self.LABEL))
        transport.add('"WARFARIN SODIUM"', payload({"generic_name": "Warfarin Sodium", "status": "Current"}))

        profile = await service.get_medication_profile("Coumadin", "openfda.brand_name")

        assert profile["shortage_search_term"] == "WARFARIN SODIUM"
        assert profile["label_information"]["status"] == "success"
        assert profile["shortage_information"]["status"] == "success"
        assert profile["overall_status"] == "Label found; shortage records found"

    @pytest.mark.asyncio
    async def test_label_missing_falls_back_to_identifier(self, service, transport):
        transport.add('"heparin"', payload({"generic_name": "Heparin", "status": "Current"}))

        profile = await service.get_medication_profile("heparin")

        assert profile["shortage_search_term"] == "heparin"
        assert profile["label_information"]["status"] == "no_data"
        assert profile["overall_status"] == "No label found; shortage records found"

    @pytest.mark.asyncio
    async def test_shortage_failure_reported_inside_profile(self, service, transport):
        transport.add('openfda.generic_name:"warfarin"', payload(self.LABEL))
        transport.add('"WARFARIN SODIUM"', 400)

        profile = await service.get_medication_profile("warfarin")

        assert profile["label_information"]["status"] == "success"
        assert profile["shortage_information"]["error_type"] == "bad_request"
        assert profile["overall_status"] == "Retrieved label information but the shortage lookup failed"

    @pytest.mark.asyncio
    async def test_both_components_failing_raises(self, service, transport):
        transport.add('openfda.generic_name:"warfarin"', 400)
        transport.add('"warfarin"', 400)

        with pytest.raises(ClassifiedError):
            await service.get_medication_profile("warfarin")


class TestBatchDrugAnalysis:
    @pytest.mark.asyncio
    async def test_order_preserved_and_failures_isolated(self, service, transport):
        transport.add('"aspirin"', payload({"generic_name": "Aspirin", "status": "Current"}))
        transport.add('product_description:"aspirin"', payload({"classification": "Class II"}))
        transport.add('"heparin"', 400)

        result = await service.batch_drug_analysis(["aspirin", "heparin", "ibuprofen"])

        analyses = result["drug_analyses"]
        assert [a["drug_name"] for a in analyses] == ["aspirin", "heparin", "ibuprofen"]

        aspirin, heparin, ibuprofen = analyses
        assert aspirin["active_shortages"] == 1
        assert aspirin["recall_count"] == 1
        assert aspirin["risk_level"] == "high"
        assert "errors" not in aspirin

        assert heparin["active_shortages"] is None
        assert heparin["errors"]["shortages"]["error_type"] == "bad_request"
        assert heparin["recall_data"]["status"] == "no_data"

        assert ibuprofen["risk_level"] == "low"

        assert result["batch_info"]["total_drugs"] == 3
        assert result["batch_summary"]["drugs_with_errors"] == 1
        assert result["batch_summary"]["high_risk_drugs"] == 1

    @pytest.mark.asyncio
    async def test_include_trends(self, service, transport):
        transport.add(
            '"aspirin"',
            payload({"generic_name": "Aspirin", "initial_posting_date": "20240401", "status": "Current"}),
        )

        result = await service.batch_drug_analysis(["aspirin"], include_trends=True)

        entry = result["drug_analyses"][0]
        assert entry["trend_data"]["status"] == "success"
        assert entry["trend_data"]["summary"]["analysis_period_months"] == 6
        assert result["batch_info"]["include_trends"] is True
