from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging
import re

from ..metrics.aggregator import COST_WARNING_THRESHOLD, UsageMetrics
from ..models import (
    Availability,
    LengthAnalysis,
    ProcessingDecision,
    ProcessingMode,
    ProcessingRequest,
    ProviderIdentity,
    SensitivityAssessment,
)
from .compliance import is_compliant
from .estimates import DEFAULT_ESTIMATOR, Estimator
from .rules import MODE_PROVIDER, ContentRule, first_matching_rule

logger = logging.getLogger(__name__)

DEFAULT_PRIVACY_THRESHOLD = 0.5
LOCAL_MAX_LENGTH = 5000
LOCAL_MAX_COMPLEXITY = 0.7

PRIVACY_OVERRIDE_REASON = "highly sensitive data forces local processing"

_SENTENCE_END = re.compile(r"[.!?]+")


@dataclass(frozen=True)
class HybridWeights:
    """Policy table for the hybrid score. Cloud is faster and better, local is cheaper and private."""

    speed: float = 0.8
    quality: float = 0.9
    cost: float = 0.3
    length_suitable: float = 0.8
    length_unsuitable: float = 0.2
    local_fit_suitable: float = 0.9
    local_fit_unsuitable: float = 0.1
    cloud_length_factor: float = 0.8
    cost_pressure: float = 0.1


DEFAULT_WEIGHTS = HybridWeights()


def analyze_length(text: str) -> LengthAnalysis:
    length = len(text)
    words = len(text.split())
    sentences = max(sum(1 for part in _SENTENCE_END.split(text) if part.strip()), 1)
    complexity = min(words / sentences / 20.0, 1.0)
    suitable = length < LOCAL_MAX_LENGTH and complexity < LOCAL_MAX_COMPLEXITY
    return LengthAnalysis(length=length, complexity=complexity, suitable_for_local=suitable)


def best_cloud_provider(availability: Availability) -> ProviderIdentity:
    if availability.cloud_secondary:
        return ProviderIdentity.CLOUD_SECONDARY
    return ProviderIdentity.CLOUD_PRIMARY


def next_cloud_provider(selected: ProviderIdentity, availability: Availability) -> ProviderIdentity:
    for provider in (ProviderIdentity.CLOUD_SECONDARY, ProviderIdentity.CLOUD_PRIMARY):
        if provider is not selected and availability[provider]:
            return provider
    return ProviderIdentity.LOCAL


def cheapest_provider(availability: Availability) -> ProviderIdentity:
    for provider in (ProviderIdentity.LOCAL, ProviderIdentity.CLOUD_SECONDARY, ProviderIdentity.CLOUD_PRIMARY):
        if availability[provider]:
            return provider
    return ProviderIdentity.CLOUD_PRIMARY


def hybrid_scores(
    assessment: SensitivityAssessment,
    length: LengthAnalysis,
    preferences: dict[str, float] | None = None,
    weights: HybridWeights = DEFAULT_WEIGHTS,
    usage: UsageMetrics | None = None,
) -> tuple[float, float]:
    prefs = preferences or {}
    suitable = length.suitable_for_local
    length_weight = weights.length_suitable if suitable else weights.length_unsuitable
    local_fit = weights.local_fit_suitable if suitable else weights.local_fit_unsuitable

    privacy_term = (1.0 - assessment.level.privacy_risk) * (1.0 + prefs.get("privacy_priority", 0.0))
    speed_weight = weights.speed * (1.0 + prefs.get("speed_priority", 0.0))
    cost_weight = weights.cost * (1.0 + prefs.get("cost_priority", 0.0))
    if usage is not None and usage.average_cost_per_request > COST_WARNING_THRESHOLD:
        cost_weight += weights.cost_pressure

    local_score = privacy_term * 1.0 + local_fit * length_weight + cost_weight * 1.0
    cloud_score = speed_weight * 1.0 + weights.quality * 1.0 + (1.0 - length_weight) * weights.cloud_length_factor
    return local_score, cloud_score


def decide(
    request: ProcessingRequest,
    preferred_mode: ProcessingMode,
    assessment: SensitivityAssessment,
    length: LengthAnalysis,
    availability: Availability,
    rules: Iterable[ContentRule] = (),
    *,
    privacy_threshold: float = DEFAULT_PRIVACY_THRESHOLD,
    weights: HybridWeights = DEFAULT_WEIGHTS,
    usage: UsageMetrics | None = None,
    estimator: Estimator = DEFAULT_ESTIMATOR,
) -> ProcessingDecision:
    mode = ProcessingMode(preferred_mode)
    level = assessment.level
    sensitive = level.privacy_risk > privacy_threshold

    selected_mode = mode
    confidence = 0.5
    fallback: ProviderIdentity | None = None
    reasoning: list[str] = []

    if mode is ProcessingMode.CLOUD_ONLY:
        provider = best_cloud_provider(availability)
        reasoning.append("cloud mode: always use cloud provider")

    elif mode is ProcessingMode.LOCAL_ONLY:
        if length.suitable_for_local:
            provider = ProviderIdentity.LOCAL
            reasoning.append("local mode: local processing preferred")
        else:
            provider = best_cloud_provider(availability)
            fallback = ProviderIdentity.LOCAL
            reasoning.append(
                f"local mode: content length {length.length} / complexity {length.complexity:.2f} "
                "exceeds local limits, falling back to cloud"
            )

    elif mode is ProcessingMode.COST_OPTIMIZED:
        provider = cheapest_provider(availability)
        reasoning.append("cost-optimized: cheapest available provider selected")

    elif mode is ProcessingMode.PRIVACY_FIRST:
        if sensitive:
            provider = ProviderIdentity.LOCAL
            reasoning.append("privacy-first: sensitive data, processing locally")
        else:
            provider = best_cloud_provider(availability)
            reasoning.append("privacy-first: no sensitive data, cloud allowed")

    else:
        reasoning.append("hybrid mode: weighted provider selection")
        local_score, cloud_score = hybrid_scores(assessment, length, request.preferences, weights, usage)
        if local_score > cloud_score and availability.local:
            provider = ProviderIdentity.LOCAL
            confidence = min(local_score, 1.0)
            reasoning.append(f"local processing preferred (score {local_score:.2f} vs {cloud_score:.2f})")
        elif availability.cloud_primary or availability.cloud_secondary:
            provider = best_cloud_provider(availability)
            confidence = min(cloud_score, 1.0)
            fallback = next_cloud_provider(provider, availability)
            reasoning.append(f"cloud processing preferred (score {cloud_score:.2f} vs {local_score:.2f})")
        else:
            provider = ProviderIdentity.LOCAL
            confidence = 0.6
            reasoning.append("no cloud provider available, falling back to local processing")

    rule = first_matching_rule(rules, request.text)
    if rule is not None:
        rule_provider = MODE_PROVIDER[rule.required_mode]
        if is_compliant(rule_provider, level):
            provider = rule_provider
            selected_mode = rule.required_mode
            if fallback is provider:
                fallback = None
            reasoning.append(f"content rule '{rule.name}' applied")
        else:
            reasoning.append(
                f"content rule '{rule.name}' ignored: {rule_provider.value} may not process {level.value} content"
            )

    # Runs last: nothing above may send sensitive content off the machine.
    if sensitive:
        provider = ProviderIdentity.LOCAL
        selected_mode = ProcessingMode.PRIVACY_FIRST
        confidence = 0.9
        fallback = None
        reasoning.append(PRIVACY_OVERRIDE_REASON)

    privacy_compliant = is_compliant(provider, level)
    if sensitive and provider is ProviderIdentity.LOCAL and not availability.local:
        privacy_compliant = False
        reasoning.append("local provider unavailable, no compliant provider can process this content")

    decision = ProcessingDecision(
        selected_provider=provider,
        selected_mode=selected_mode,
        confidence=min(confidence, 1.0),
        reasoning="; ".join(reasoning),
        fallback_provider=fallback,
        estimated_cost=estimator.estimate_cost(provider, request.task_type),
        estimated_time=estimator.estimate_time(provider, request.task_type),
        privacy_compliant=privacy_compliant,
        sensitivity=level,
    )
    logger.debug("Decision %s/%s for %s content: %s", provider, selected_mode, level, decision.reasoning)
    return decision
