"""Tests for usage analytics."""

from openfda_mcp.monitoring import UsageAnalytics


def test_record_and_aggregate():
    analytics = UsageAnalytics(window_size=10)
    analytics.record_tool_call("search_drug_shortages", ["Aspirin"], 0.2)
    analytics.record_tool_call("search_drug_shortages", [" aspirin "], 0.4)
    analytics.record_tool_call("search_drug_recalls", ["metformin"], 0.1, success=False)

    stats = analytics.get_stats()

    assert stats["total_calls"] == 3
    assert stats["by_tool"] == {"search_drug_shortages": 2, "search_drug_recalls": 1}
    assert stats["errors_by_tool"] == {"search_drug_recalls": 1}
    assert stats["top_drugs"] == {"aspirin": 2, "metformin": 1}
    assert stats["unique_drugs"] == 2
    assert stats["avg_duration"] == 0.233
    assert stats["p95_duration"] == 0.4
    assert [c["tool"] for c in stats["recent_calls"]] == [
        "search_drug_shortages",
        "search_drug_shortages",
        "search_drug_recalls",
    ]


def test_window_is_bounded_but_tool_counters_are_not():
    analytics = UsageAnalytics(window_size=2)
    for _ in range(5):
        analytics.record_tool_call("search_drug_shortages", ["aspirin"], 0.1)

    stats = analytics.get_stats()
    assert stats["window_events"] == 2
    assert stats["total_calls"] == 5
    assert stats["by_tool"] == {"search_drug_shortages": 5}
    assert stats["top_drugs"] == {"aspirin": 2}


def test_drug_counts_do_not_grow_past_the_window():
    analytics = UsageAnalytics(window_size=3)
    for i in range(100):
        analytics.record_tool_call("batch_drug_analysis", [f"drug{i}a", f"drug{i}b"], 0.1)

    stats = analytics.get_stats(top_n=50)
    assert stats["unique_drugs"] == 6
    assert set(stats["top_drugs"]) == {
        "drug97a", "drug97b", "drug98a", "drug98b", "drug99a", "drug99b"
    }
    assert not hasattr(analytics, "by_drug")


def test_failed_validation_without_drugs():
    analytics = UsageAnalytics()
    analytics.record_tool_call("batch_drug_analysis", success=False)
    stats = analytics.get_stats()
    assert stats["unique_drugs"] == 0
    assert stats["avg_duration"] == 0


def test_reset():
    analytics = UsageAnalytics()
    analytics.record_tool_call("search_drug_shortages", ["aspirin"], 0.1)
    analytics.reset()
    assert analytics.get_stats()["total_calls"] == 0
