"""Usage metrics and advisory recommendations for routing decisions."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
import threading

from ..models import ProcessingDecision, ProcessingMode, ProviderIdentity

COST_WARNING_THRESHOLD = 0.05
FALLBACK_WARNING_RATIO = 0.25


@dataclass(frozen=True)
class UsageMetrics:
    total_requests: int = 0
    cloud_requests: int = 0
    local_requests: int = 0
    mode_switches: int = 0
    fallback_activations: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    average_cost_per_request: float = 0.0
    mode_usage: dict[ProcessingMode, int] = field(default_factory=lambda: {mode: 0 for mode in ProcessingMode})
    last_updated: datetime | None = None

    @property
    def cloud_usage_percentage(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.cloud_requests / self.total_requests * 100.0

    def to_dict(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "cloud_requests": self.cloud_requests,
            "local_requests": self.local_requests,
            "mode_switches": self.mode_switches,
            "fallback_activations": self.fallback_activations,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "average_response_time": self.average_response_time,
            "average_cost_per_request": self.average_cost_per_request,
            "cloud_usage_percentage": self.cloud_usage_percentage,
            "mode_usage": {mode.value: count for mode, count in self.mode_usage.items()},
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


class MetricsAggregator:
    """Accumulates per-decision outcomes. Readers get immutable snapshots."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics = UsageMetrics()
        self._last_mode: ProcessingMode | None = None

    def record(
        self,
        decision: ProcessingDecision,
        actual_duration: float,
        success: bool = True,
        fallback_used: bool = False,
        provider_used: ProviderIdentity | None = None,
        actual_cost: float | None = None,
    ) -> UsageMetrics:
        """Fold one request into the running totals.

        ``provider_used`` and ``actual_cost`` describe the provider that served
        the request when it differs from the decision (fallbacks).
        """
        provider = provider_used or decision.selected_provider
        cost = decision.estimated_cost if actual_cost is None else actual_cost
        with self._lock:
            m = self._metrics
            total = m.total_requests + 1
            is_local = not provider.is_cloud
            mode_usage = dict(m.mode_usage)
            mode_usage[decision.selected_mode] = mode_usage.get(decision.selected_mode, 0) + 1
            switched = self._last_mode is not None and self._last_mode is not decision.selected_mode

            self._metrics = replace(
                m,
                total_requests=total,
                cloud_requests=m.cloud_requests + (0 if is_local else 1),
                local_requests=m.local_requests + (1 if is_local else 0),
                mode_switches=m.mode_switches + (1 if switched else 0),
                fallback_activations=m.fallback_activations + (1 if fallback_used else 0),
                successful_requests=m.successful_requests + (1 if success else 0),
                failed_requests=m.failed_requests + (0 if success else 1),
                average_response_time=m.average_response_time + (actual_duration - m.average_response_time) / total,
                average_cost_per_request=m.average_cost_per_request
                + (cost - m.average_cost_per_request) / total,
                mode_usage=mode_usage,
                last_updated=datetime.now(UTC),
            )
            self._last_mode = decision.selected_mode
            return self._metrics

    def snapshot(self) -> UsageMetrics:
        with self._lock:
            return self._metrics

    def reset(self) -> None:
        with self._lock:
            self._metrics = UsageMetrics()
            self._last_mode = None

    def get_recommendations(self) -> list[str]:
        metrics = self.snapshot()
        recommendations: list[str] = []
        if metrics.total_requests == 0:
            return recommendations

        hybrid_count = metrics.mode_usage.get(ProcessingMode.HYBRID, 0)
        most_used, count = max(
            ((mode, n) for mode, n in metrics.mode_usage.items() if mode is not ProcessingMode.HYBRID),
            key=lambda item: item[1],
        )
        if count > hybrid_count:
            recommendations.append(
                f"most-used mode is {most_used.value}; hybrid mode might give better results"
            )
        if metrics.average_cost_per_request > COST_WARNING_THRESHOLD:
            recommendations.append(
                f"average cost per request {metrics.average_cost_per_request:.3f} is high; "
                "consider local models for routine tasks"
            )
        if metrics.fallback_activations / metrics.total_requests > FALLBACK_WARNING_RATIO:
            recommendations.append(
                f"{metrics.fallback_activations} of {metrics.total_requests} requests needed a fallback provider; "
                "check provider credentials and connectivity"
            )
        return recommendations
