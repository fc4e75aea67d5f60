import pytest

from src.mode_router.errors import ProviderError
from src.mode_router.health.availability import ProviderAvailabilityProbe
from src.mode_router.health.local_health import Health
from src.mode_router.metrics.aggregator import MetricsAggregator
from src.mode_router.models import ProviderIdentity
from src.mode_router.notifications.center import NotificationCenter
from src.mode_router.providers.base import ProviderResult
from src.mode_router.queue.rate_limiter import RateLimiter
from src.mode_router.queue.retry import RetryController
from src.mode_router.sensitivity.classifier import SensitivityClassifier
from src.mode_router.service import RoutingService
from src.mode_router.settings import Settings
from src.mode_router.store.settings_store import MemoryStore, SettingsRepository


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


class FakeGateway:
    """Scripted provider: per-provider list of errors raised before succeeding."""

    def __init__(self, failures: dict[ProviderIdentity, list[ProviderError]] | None = None):
        self.failures = {p: list(errs) for p, errs in (failures or {}).items()}
        self.calls: list[ProviderIdentity] = []

    async def invoke(self, provider, task_type, text):
        self.calls.append(provider)
        pending = self.failures.get(provider)
        if pending:
            error = pending[0] if len(pending) == 1 else pending.pop(0)
            raise error
        return ProviderResult(text=f"{provider.value}:{task_type.value}", tokens_used=42, provider=provider)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter_clock():
    return FakeClock()


@pytest.fixture
def fake_gateway():
    return FakeGateway


@pytest.fixture
def make_service(tmp_path):
    def _make(
        gateway=None,
        online=True,
        local_ok=True,
        api_keys=True,
        audit=False,
        store=None,
    ):
        config = Settings(
            openai_api_key="sk-primary" if api_keys else None,
            openrouter_api_key="sk-secondary" if api_keys else None,
        )
        probe = ProviderAvailabilityProbe(
            config,
            is_online=lambda: online,
            local_health=lambda: Health(local_ok, None if local_ok else "mem_percent=99.0"),
        )
        clock = FakeClock()
        limiter = RateLimiter(1024, 1000, clock=clock, sleep=clock.sleep)
        return RoutingService(
            settings_repository=SettingsRepository(store if store is not None else MemoryStore()),
            classifier=SensitivityClassifier(),
            probe=probe,
            retry=RetryController(limiter, sleep=clock.sleep),
            metrics=MetricsAggregator(),
            notifications=NotificationCenter(),
            gateway=gateway or FakeGateway(),
            audit_log_path=str(tmp_path / "audit.log") if audit else None,
        )

    return _make
