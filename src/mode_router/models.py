from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .errors import RequestValidationError


class TaskType(StrEnum):
    SUMMARY = "summary"
    KEYWORDS = "keyword-extraction"
    CATEGORIZATION = "categorization"
    ENHANCEMENT = "enhancement"
    QUESTIONS = "question-generation"
    ANALYSIS = "analysis"


class ProcessingMode(StrEnum):
    CLOUD_ONLY = "cloud-only"
    LOCAL_ONLY = "local-only"
    HYBRID = "hybrid"
    COST_OPTIMIZED = "cost-optimized"
    PRIVACY_FIRST = "privacy-first"


class ProviderIdentity(StrEnum):
    CLOUD_PRIMARY = "cloud-primary"
    CLOUD_SECONDARY = "cloud-secondary"
    LOCAL = "local"

    @property
    def is_cloud(self) -> bool:
        return self is not ProviderIdentity.LOCAL


class SensitivityLevel(StrEnum):
    """Four-tier sensitivity, ordered by privacy risk."""

    PUBLIC = "public"
    INTERNAL = "internal"
    CONFIDENTIAL = "confidential"
    HIGHLY_CONFIDENTIAL = "highly-confidential"

    @property
    def privacy_risk(self) -> float:
        return _PRIVACY_RISK[self]

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SensitivityLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SensitivityLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SensitivityLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SensitivityLevel):
            return NotImplemented
        return self.rank >= other.rank


_LEVEL_ORDER = (
    SensitivityLevel.PUBLIC,
    SensitivityLevel.INTERNAL,
    SensitivityLevel.CONFIDENTIAL,
    SensitivityLevel.HIGHLY_CONFIDENTIAL,
)

_PRIVACY_RISK = {
    SensitivityLevel.PUBLIC: 0.0,
    SensitivityLevel.INTERNAL: 0.25,
    SensitivityLevel.CONFIDENTIAL: 0.75,
    SensitivityLevel.HIGHLY_CONFIDENTIAL: 1.0,
}

PREFERENCE_KEYS = ("privacy_priority", "speed_priority", "cost_priority")


@dataclass(frozen=True)
class ProcessingRequest:
    text: str
    task_type: TaskType
    preferences: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise RequestValidationError("text must be a string")
        try:
            task_type = TaskType(self.task_type)
        except ValueError as exc:
            raise RequestValidationError(f"unknown task type {self.task_type!r}") from exc
        object.__setattr__(self, "task_type", task_type)

        preferences = dict(self.preferences or {})
        for key, value in preferences.items():
            if key not in PREFERENCE_KEYS:
                raise RequestValidationError(f"unknown preference {key!r}")
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise RequestValidationError(f"preference {key!r} must be a number in [0, 1]")
        object.__setattr__(self, "preferences", {k: float(v) for k, v in preferences.items()})


@dataclass(frozen=True)
class SensitivityAssessment:
    level: SensitivityLevel
    confidence: float
    reasons: tuple[str, ...]
    pii_matches: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class LengthAnalysis:
    length: int
    complexity: float
    suitable_for_local: bool


@dataclass(frozen=True)
class Availability:
    """Reachability of every provider; all three must be stated."""

    cloud_primary: bool
    cloud_secondary: bool
    local: bool

    def __getitem__(self, provider: ProviderIdentity) -> bool:
        return getattr(self, ProviderIdentity(provider).name.lower())

    @classmethod
    def from_mapping(cls, states: dict[ProviderIdentity, bool]) -> Availability:
        missing = [p.value for p in ProviderIdentity if p not in states]
        if missing:
            raise ValueError(f"availability missing for providers: {', '.join(missing)}")
        return cls(**{p.name.lower(): bool(states[p]) for p in ProviderIdentity})

    def as_dict(self) -> dict[str, bool]:
        return {p.value: self[p] for p in ProviderIdentity}


@dataclass(frozen=True)
class ProcessingDecision:
    selected_provider: ProviderIdentity
    selected_mode: ProcessingMode
    confidence: float
    reasoning: str
    fallback_provider: ProviderIdentity | None
    estimated_cost: float
    estimated_time: float
    privacy_compliant: bool
    sensitivity: SensitivityLevel = SensitivityLevel.PUBLIC

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected_provider": self.selected_provider.value,
            "selected_mode": self.selected_mode.value,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "fallback_provider": self.fallback_provider.value if self.fallback_provider else None,
            "estimated_cost": self.estimated_cost,
            "estimated_time": self.estimated_time,
            "privacy_compliant": self.privacy_compliant,
            "sensitivity": self.sensitivity.value,
        }
