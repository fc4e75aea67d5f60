from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .errors import ErrorKind, RoutingError
from .health.availability import ProviderAvailabilityProbe
from .metrics.aggregator import MetricsAggregator
from .models import ProcessingMode, ProcessingRequest, TaskType
from .notifications.center import NotificationCenter
from .providers.gateway import ProviderGateway
from .queue.rate_limiter import RateLimiter
from .queue.retry import RetryController
from .sensitivity.classifier import SensitivityClassifier
from .service import RetryPolicy, RoutingService
from .settings import Settings, settings
from .store.settings_store import JsonFileStore, ProcessingModeSettings, SettingsRepository

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.PRIVACY_VIOLATION: 409,
    ErrorKind.PROVIDER_UNAVAILABLE: 503,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.AUTH: 502,
    ErrorKind.RETRY_EXHAUSTED: 502,
    ErrorKind.TRANSIENT_SERVER: 502,
    ErrorKind.NETWORK: 502,
    ErrorKind.PROVIDER: 502,
    ErrorKind.SENSITIVITY_ANALYSIS: 500,
}


class ProcessReq(BaseModel):
    text: str
    task_type: TaskType = TaskType.SUMMARY
    preferences: dict[str, float] = Field(default_factory=dict)
    mode: ProcessingMode | None = None
    require_compliance: bool = True


def build_service(config: Settings) -> RoutingService:
    limiter = RateLimiter(config.requests_per_second, config.requests_per_minute)
    return RoutingService(
        settings_repository=SettingsRepository(JsonFileStore(config.settings_store_path)),
        classifier=SensitivityClassifier(),
        probe=ProviderAvailabilityProbe(config),
        retry=RetryController(limiter),
        metrics=MetricsAggregator(),
        notifications=NotificationCenter(),
        gateway=ProviderGateway(config),
        retry_policy=RetryPolicy(
            max_retries=config.retry_max_retries,
            base_delay=config.retry_base_delay,
            use_exponential_backoff=config.retry_exponential_backoff,
        ),
        audit_log_path=config.audit_log_path,
    )


def create_app(service: RoutingService) -> FastAPI:
    app = FastAPI(title="mode-router", version="0.3.0")
    app.state.service = service

    @app.exception_handler(RoutingError)
    async def routing_error_handler(request: Request, exc: RoutingError):
        status = STATUS_BY_KIND.get(exc.kind, 500)
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.describe())
        return JSONResponse(status_code=status, content={"detail": exc.to_dict()})

    @app.get("/health")
    def health() -> dict[str, Any]:
        report = service.probe.report()
        limiter = service.retry.rate_limiter.status()
        return {
            "ok": report.local_health.ok,
            "reason": report.local_health.reason,
            "online": report.online,
            "providers": report.availability.as_dict(),
            "rate_limit": {
                "requests_in_last_minute": limiter.requests_in_last_minute,
                "max_requests_per_minute": limiter.max_requests_per_minute,
                "requests_per_second": limiter.requests_per_second,
                "can_make_request": limiter.can_make_request,
                "minute_usage_percentage": limiter.minute_usage_percentage,
            },
        }

    @app.post("/v1/decide")
    async def decide_route(req: ProcessReq) -> dict[str, Any]:
        request = ProcessingRequest(text=req.text, task_type=req.task_type, preferences=req.preferences)
        decision = await service.decide(request, req.mode)
        return decision.to_dict()

    @app.post("/v1/process")
    async def process_route(req: ProcessReq) -> dict[str, Any]:
        request = ProcessingRequest(text=req.text, task_type=req.task_type, preferences=req.preferences)
        result = await service.process(request, req.mode, require_compliance=req.require_compliance)
        return result.to_dict()

    @app.get("/v1/metrics")
    def metrics() -> dict[str, Any]:
        return service.metrics.snapshot().to_dict()

    @app.post("/v1/metrics/reset")
    def reset_metrics() -> dict[str, Any]:
        service.reset_metrics()
        return service.metrics.snapshot().to_dict()

    @app.get("/v1/recommendations")
    def recommendations() -> dict[str, Any]:
        return {"recommendations": service.metrics.get_recommendations()}

    @app.get("/v1/settings")
    def get_settings() -> dict[str, Any]:
        return service.mode_settings.model_dump(mode="json")

    @app.put("/v1/settings")
    def put_settings(new_settings: ProcessingModeSettings) -> dict[str, Any]:
        return service.update_settings(new_settings).model_dump(mode="json")

    @app.get("/v1/notifications")
    def notifications() -> dict[str, Any]:
        return {"notifications": [n.to_dict() for n in service.notifications.history()]}

    return app


logging.basicConfig(level=settings.log_level)
app = create_app(build_service(settings))
