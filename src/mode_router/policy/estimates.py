"""A priori cost and latency estimates per provider and task.

These are static lookups, not measurements.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from ..models import ProviderIdentity, TaskType

# Cost per 1000 tokens
COST_PER_1K_TOKENS: dict[ProviderIdentity, float] = {
    ProviderIdentity.CLOUD_PRIMARY: 0.03,
    ProviderIdentity.CLOUD_SECONDARY: 0.02,
    ProviderIdentity.LOCAL: 0.0,
}

# Expected tokens consumed by one task
TOKENS_PER_TASK: dict[TaskType, int] = {
    TaskType.SUMMARY: 200,
    TaskType.KEYWORDS: 100,
    TaskType.CATEGORIZATION: 50,
    TaskType.ENHANCEMENT: 300,
    TaskType.QUESTIONS: 250,
    TaskType.ANALYSIS: 400,
}

# Expected wall-clock seconds
DURATION_SECONDS: dict[ProviderIdentity, dict[TaskType, float]] = {
    ProviderIdentity.CLOUD_PRIMARY: {
        TaskType.SUMMARY: 2.0,
        TaskType.KEYWORDS: 1.5,
        TaskType.CATEGORIZATION: 1.0,
        TaskType.ENHANCEMENT: 3.0,
        TaskType.QUESTIONS: 2.5,
        TaskType.ANALYSIS: 4.0,
    },
    ProviderIdentity.CLOUD_SECONDARY: {
        TaskType.SUMMARY: 2.5,
        TaskType.KEYWORDS: 2.0,
        TaskType.CATEGORIZATION: 1.5,
        TaskType.ENHANCEMENT: 3.5,
        TaskType.QUESTIONS: 3.0,
        TaskType.ANALYSIS: 5.0,
    },
    ProviderIdentity.LOCAL: {
        TaskType.SUMMARY: 5.0,
        TaskType.KEYWORDS: 4.0,
        TaskType.CATEGORIZATION: 3.0,
        TaskType.ENHANCEMENT: 7.0,
        TaskType.QUESTIONS: 6.0,
        TaskType.ANALYSIS: 10.0,
    },
}

DEFAULT_TOKEN_ESTIMATE = 200
DEFAULT_DURATION_SECONDS = 3.0


@dataclass(frozen=True)
class Estimator:
    cost_per_1k_tokens: Mapping[ProviderIdentity, float] = field(default_factory=lambda: dict(COST_PER_1K_TOKENS))
    tokens_per_task: Mapping[TaskType, int] = field(default_factory=lambda: dict(TOKENS_PER_TASK))
    duration_seconds: Mapping[ProviderIdentity, Mapping[TaskType, float]] = field(
        default_factory=lambda: {p: dict(t) for p, t in DURATION_SECONDS.items()}
    )

    def __post_init__(self) -> None:
        missing = [p.value for p in ProviderIdentity if p not in self.cost_per_1k_tokens]
        if missing:
            raise ValueError(f"cost rate missing for providers: {', '.join(missing)}")

    def estimate_cost(self, provider: ProviderIdentity, task_type: TaskType) -> float:
        tokens = self.tokens_per_task.get(task_type, DEFAULT_TOKEN_ESTIMATE)
        return self.cost_per_1k_tokens[provider] * tokens / 1000.0

    def estimate_time(self, provider: ProviderIdentity, task_type: TaskType) -> float:
        return self.duration_seconds.get(provider, {}).get(task_type, DEFAULT_DURATION_SECONDS)


DEFAULT_ESTIMATOR = Estimator()


def estimate_cost(provider: ProviderIdentity, task_type: TaskType) -> float:
    return DEFAULT_ESTIMATOR.estimate_cost(provider, task_type)


def estimate_time(provider: ProviderIdentity, task_type: TaskType) -> float:
    return DEFAULT_ESTIMATOR.estimate_time(provider, task_type)
