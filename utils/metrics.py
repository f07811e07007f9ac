"""
Processing statistics tracker.

Stores the summary of the most recent graph build for the /metrics endpoint.

Time Complexity: O(1) per operation
Memory: O(1)
"""

from typing import Any, Dict


class MetricsTracker:
    """Tracks graph builds across API calls."""

    def __init__(self):
        self._total_runs: int = 0
        self._failed_runs: int = 0
        self._last_metrics: Dict[str, Any] = {
            "status": "no_processing_yet",
            "total_runs": 0,
            "failed_runs": 0,
        }

    def record(self, summary: Dict[str, Any]) -> None:
        """Record metrics from a successful build."""
        self._total_runs += 1
        self._last_metrics = {
            "status": "ready",
            "total_runs": self._total_runs,
            "failed_runs": self._failed_runs,
            "last_run": summary,
        }

    def record_failure(self, reason: str) -> None:
        self._total_runs += 1
        self._failed_runs += 1
        self._last_metrics = {
            **self._last_metrics,
            "status": "last_run_failed",
            "total_runs": self._total_runs,
            "failed_runs": self._failed_runs,
            "last_error": reason,
        }

    def get_metrics(self) -> Dict[str, Any]:
        """Return the latest metrics."""
        return self._last_metrics
