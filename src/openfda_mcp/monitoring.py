"""Lightweight usage analytics for tool calls."""

import time
from collections import Counter, deque
from typing import Any

from . import config


class UsageAnalytics:
    """Bounded window of tool-call events plus all-time counters by tool.

    Per-drug counts are derived from the window only, so memory stays bounded
    no matter how many distinct names clients send.
    """

    def __init__(self, window_size: int = config.USAGE_WINDOW_SIZE):
        """Initialize with a configurable window size.

        Args:
            window_size: Maximum number of events to keep in memory
        """
        self.events: deque[dict[str, Any]] = deque(maxlen=window_size)
        self.by_tool: dict[str, int] = {}
        self.errors_by_tool: dict[str, int] = {}
        self.total_calls = 0
        self.window_size = window_size
        self.started_at = time.time()

    def record_tool_call(
        self,
        tool: str,
        drugs: list[str] | None = None,
        duration: float | None = None,
        success: bool = True,
    ) -> None:
        """Record one tools/call.

        Args:
            tool: Tool name
            drugs: Medication names the call asked about
            duration: Wall time in seconds
            success: Whether the call produced a result
        """
        drugs = [d.strip().lower() for d in drugs or [] if d and d.strip()]
        self.events.append(
            {
                "timestamp": time.time(),
                "tool": tool,
                "drugs": drugs,
                "duration": duration,
                "success": success,
            }
        )
        self.total_calls += 1
        self.by_tool[tool] = self.by_tool.get(tool, 0) + 1
        if not success:
            self.errors_by_tool[tool] = self.errors_by_tool.get(tool, 0) + 1

    def get_stats(self, top_n: int = 10) -> dict[str, Any]:
        """Aggregated statistics.

        Returns:
            Counters by tool, error counts, and over the window: per-drug
            counts, average and p95 duration and the last 10 calls
        """
        durations = sorted(e["duration"] for e in self.events if e.get("duration"))
        avg_duration = sum(durations) / len(durations) if durations else 0
        p95_duration = 0
        if durations:
            p95_index = min(int(len(durations) * 0.95), len(durations) - 1)
            p95_duration = durations[p95_index]

        by_drug = Counter(drug for e in self.events for drug in e["drugs"])
        top_drugs = sorted(by_drug.items(), key=lambda item: (-item[1], item[0]))
        return {
            "total_calls": self.total_calls,
            "uptime_seconds": round(time.time() - self.started_at, 1),
            "by_tool": dict(self.by_tool),
            "errors_by_tool": dict(self.errors_by_tool),
            "top_drugs": dict(top_drugs[:top_n]),
            "unique_drugs": len(by_drug),
            "window_events": len(self.events),
            "avg_duration": round(avg_duration, 3),
            "p95_duration": round(p95_duration, 3),
            "recent_calls": [
                {k: e[k] for k in ("timestamp", "tool", "success")}
                for e in list(self.events)[-10:]
            ],
        }

    def reset(self) -> None:
        """Reset all counters and clear the event history."""
        self.events.clear()
        self.by_tool.clear()
        self.errors_by_tool.clear()
        self.total_calls = 0


# Global analytics instance
_usage_analytics: UsageAnalytics | None = None


def get_usage_analytics() -> UsageAnalytics:
    """Get or create the global usage analytics instance."""
    global _usage_analytics
    if _usage_analytics is None:
        _usage_analytics = UsageAnalytics()
    return _usage_analytics
