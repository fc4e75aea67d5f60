"""Request pipeline: classify, decide, call the provider, record the outcome."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
import uuid

from .audit.log import audit_append, decision_record
from .errors import NetworkError, PrivacyViolationError, ProviderUnavailable, RetryExhausted, RoutingError
from .health.availability import ProviderAvailabilityProbe
from .metrics.aggregator import MetricsAggregator
from .models import Availability, ProcessingDecision, ProcessingMode, ProcessingRequest, ProviderIdentity
from .notifications.center import NotificationCenter, NotificationType, Severity
from .policy.compliance import is_compliant
from .policy.engine import DEFAULT_WEIGHTS, HybridWeights, analyze_length, decide
from .policy.estimates import DEFAULT_ESTIMATOR, Estimator
from .providers.base import ProviderResult
from .providers.gateway import ProviderGateway
from .queue.retry import RetryController
from .sensitivity.classifier import SensitivityClassifier
from .store.settings_store import ProcessingModeSettings, SettingsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    use_exponential_backoff: bool = True


@dataclass(frozen=True)
class ProcessingResult:
    request_id: str
    decision: ProcessingDecision
    text: str
    tokens_used: int
    provider_used: ProviderIdentity
    fallback_used: bool
    duration_seconds: float

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "decision": self.decision.to_dict(),
            "text": self.text,
            "tokens_used": self.tokens_used,
            "provider_used": self.provider_used.value,
            "fallback_used": self.fallback_used,
            "duration_seconds": self.duration_seconds,
        }


class RoutingService:
    def __init__(
        self,
        settings_repository: SettingsRepository,
        classifier: SensitivityClassifier,
        probe: ProviderAvailabilityProbe,
        retry: RetryController,
        metrics: MetricsAggregator,
        notifications: NotificationCenter,
        gateway: ProviderGateway,
        *,
        retry_policy: RetryPolicy = RetryPolicy(),
        audit_log_path: str | None = None,
        weights: HybridWeights = DEFAULT_WEIGHTS,
        estimator: Estimator = DEFAULT_ESTIMATOR,
    ):
        self.settings_repository = settings_repository
        self.classifier = classifier
        self.probe = probe
        self.retry = retry
        self.metrics = metrics
        self.notifications = notifications
        self.gateway = gateway
        self.retry_policy = retry_policy
        self.audit_log_path = audit_log_path
        self.weights = weights
        self.estimator = estimator
        self._announced_recommendations: set[str] = set()
        self.mode_settings = settings_repository.load()
        self.notifications.enabled = self.mode_settings.notifications_enabled

    def update_settings(self, new_settings: ProcessingModeSettings) -> ProcessingModeSettings:
        self.settings_repository.save(new_settings)
        self.mode_settings = new_settings
        self.notifications.enabled = new_settings.notifications_enabled
        return new_settings

    async def decide(self, request: ProcessingRequest, mode: ProcessingMode | None = None) -> ProcessingDecision:
        decision, _ = await self._decide(request, mode)
        return decision

    async def _decide(
        self,
        request: ProcessingRequest,
        mode: ProcessingMode | None,
    ) -> tuple[ProcessingDecision, Availability]:
        s = self.mode_settings
        assessment, length = await asyncio.gather(
            asyncio.to_thread(self.classifier.assess, request.text),
            asyncio.to_thread(analyze_length, request.text),
        )
        report = self.probe.report()

        preferred = ProcessingMode(mode) if mode is not None else s.preferred_mode
        if s.auto_switch_enabled and not report.online and preferred is not ProcessingMode.LOCAL_ONLY:
            self.notifications.emit(
                NotificationType.MODE_SWITCH,
                "Offline",
                f"no network connection, switching from {preferred.value} to {ProcessingMode.LOCAL_ONLY.value}",
                Severity.WARNING,
            )
            preferred = ProcessingMode.LOCAL_ONLY

        decision = decide(
            request,
            preferred,
            assessment,
            length,
            report.availability,
            s.content_rules,
            privacy_threshold=s.privacy_threshold,
            weights=self.weights,
            usage=self.metrics.snapshot() if s.analytics_enabled else None,
            estimator=self.estimator,
        )

        if decision.selected_mode is not preferred:
            self.notifications.emit(
                NotificationType.MODE_SWITCH,
                "Processing mode switched",
                f"switched to {decision.selected_mode.value} ({decision.selected_provider.value})",
            )
        if decision.estimated_cost > s.cost_threshold:
            self.notifications.emit(
                NotificationType.RECOMMENDATION,
                "Cost threshold exceeded",
                f"estimated cost {decision.estimated_cost:.4f} exceeds {s.cost_threshold:.4f}",
                Severity.WARNING,
            )
        if decision.estimated_time > s.time_threshold:
            self.notifications.emit(
                NotificationType.RECOMMENDATION,
                "Time threshold exceeded",
                f"estimated time {decision.estimated_time:.1f}s exceeds {s.time_threshold:.1f}s",
                Severity.WARNING,
            )
        if decision.confidence < s.quality_threshold:
            logger.info("Low-confidence decision (%.2f): %s", decision.confidence, decision.reasoning)
        return decision, report.availability

    async def process(
        self,
        request: ProcessingRequest,
        mode: ProcessingMode | None = None,
        require_compliance: bool = True,
    ) -> ProcessingResult:
        """Decide, then call the chosen provider through the retry controller.

        Raises:
            PrivacyViolationError: The decision is not privacy compliant and
                ``require_compliance`` is set.
            ProviderUnavailable: Neither the selected nor the fallback provider
                is reachable.
            AuthError: The provider rejected the credentials.
            RetryExhausted: Every attempt on every eligible provider failed.
        """
        request_id = str(uuid.uuid4())
        started = time.monotonic()
        decision, availability = await self._decide(request, mode)

        try:
            if require_compliance and not decision.privacy_compliant:
                raise PrivacyViolationError(
                    f"{decision.sensitivity.value} content has no compliant provider available",
                    decision.selected_provider,
                )
            result, fallback_used = await self._execute(request, decision, availability)
        except RoutingError as exc:
            duration = time.monotonic() - started
            self.metrics.record(decision, duration, success=False)
            self._audit(request_id, request, decision, None, False, duration, exc.kind.value)
            self.notifications.emit(NotificationType.ERROR, "Processing failed", exc.describe(), Severity.ERROR)
            raise

        duration = time.monotonic() - started
        self.metrics.record(
            decision,
            duration,
            success=True,
            fallback_used=fallback_used,
            provider_used=result.provider,
            actual_cost=self.estimator.estimate_cost(result.provider, request.task_type),
        )
        self._audit(request_id, request, decision, result.provider.value, True, duration, None)
        self._announce_recommendations()
        return ProcessingResult(
            request_id=request_id,
            decision=decision,
            text=result.text,
            tokens_used=result.tokens_used,
            provider_used=result.provider,
            fallback_used=fallback_used,
            duration_seconds=duration,
        )

    async def _execute(
        self,
        request: ProcessingRequest,
        decision: ProcessingDecision,
        availability: Availability,
    ) -> tuple[ProviderResult, bool]:
        candidates = [decision.selected_provider]
        fallback = decision.fallback_provider
        if fallback is not None and fallback is not decision.selected_provider and is_compliant(
            fallback, decision.sensitivity
        ):
            candidates.append(fallback)

        usable = [provider for provider in candidates if availability[provider]]
        if not usable:
            raise ProviderUnavailable(
                f"no reachable provider among {', '.join(p.value for p in candidates)}",
                decision.selected_provider,
            )

        policy = self.retry_policy
        last_error: RoutingError | None = None
        for provider in usable:
            if last_error is not None:
                logger.warning("Falling back to %s after %s", provider, last_error.describe())
            try:
                result = await self.retry.execute_with_retry(
                    lambda p=provider: self.gateway.invoke(p, request.task_type, request.text),
                    max_retries=policy.max_retries,
                    base_delay=policy.base_delay,
                    use_exponential_backoff=policy.use_exponential_backoff,
                )
            except (RetryExhausted, NetworkError) as exc:
                last_error = exc
                continue

            fallback_used = provider is not decision.selected_provider
            if fallback_used:
                self.notifications.emit(
                    NotificationType.FALLBACK,
                    "Fallback activated",
                    f"switched from {decision.selected_provider.value} to {provider.value}",
                    Severity.WARNING,
                )
            return result, fallback_used

        assert last_error is not None
        raise last_error

    def _audit(
        self,
        request_id: str,
        request: ProcessingRequest,
        decision: ProcessingDecision,
        provider_used: str | None,
        success: bool,
        duration: float,
        error_kind: str | None,
    ) -> None:
        if not self.audit_log_path:
            return
        audit_append(
            self.audit_log_path,
            decision_record(
                request_id,
                request,
                decision,
                provider_used=provider_used,
                success=success,
                duration_seconds=duration,
                error_kind=error_kind,
            ),
        )

    def _announce_recommendations(self) -> None:
        for recommendation in self.metrics.get_recommendations():
            if recommendation in self._announced_recommendations:
                continue
            self._announced_recommendations.add(recommendation)
            self.notifications.emit(NotificationType.RECOMMENDATION, "Recommendation", recommendation)

    def reset_metrics(self) -> None:
        self.metrics.reset()
        self._announced_recommendations.clear()
