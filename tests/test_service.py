import asyncio
import json

import pytest

from src.mode_router.errors import (
    AuthError,
    NetworkError,
    PrivacyViolationError,
    ProviderUnavailable,
    TransientServerError,
)
from src.mode_router.models import ProcessingMode, ProcessingRequest, ProviderIdentity, TaskType
from src.mode_router.notifications.center import NotificationType
from src.mode_router.policy.rules import ContentRule
from src.mode_router.store.settings_store import MemoryStore, ProcessingModeSettings

SHORT = "Buy milk. Call the plumber. Book the flights now!!"
LONG = "word " * 1200
CONFIDENTIAL = "Vertraulich: Angebot für den neuen Standort"


def request(text=SHORT, task_type=TaskType.SUMMARY):
    return ProcessingRequest(text, task_type)


def notifications_of(service, type_):
    return [n for n in service.notifications.history() if n.type is type_]


def test_hybrid_processes_short_text_locally(make_service):
    service = make_service()
    result = asyncio.run(service.process(request()))

    assert result.provider_used is ProviderIdentity.LOCAL
    assert result.text == "local:summary"
    assert result.tokens_used == 42
    assert result.fallback_used is False
    assert service.gateway.calls == [ProviderIdentity.LOCAL]

    metrics = service.metrics.snapshot()
    assert metrics.total_requests == 1
    assert metrics.local_requests == 1
    assert metrics.successful_requests == 1


def test_highly_sensitive_text_stays_local_in_cloud_mode(make_service):
    service = make_service()
    result = asyncio.run(service.process(request("Streng vertraulich: Gehaltsliste"), ProcessingMode.CLOUD_ONLY))

    assert result.provider_used is ProviderIdentity.LOCAL
    assert result.decision.selected_mode is ProcessingMode.PRIVACY_FIRST
    assert service.gateway.calls == [ProviderIdentity.LOCAL]
    assert notifications_of(service, NotificationType.MODE_SWITCH)


def test_exhausted_retries_fall_back_to_next_cloud(make_service, fake_gateway):
    gateway = fake_gateway({ProviderIdentity.CLOUD_SECONDARY: [TransientServerError("503")]})
    service = make_service(gateway=gateway)
    result = asyncio.run(service.process(request(LONG)))

    assert result.decision.selected_provider is ProviderIdentity.CLOUD_SECONDARY
    assert result.provider_used is ProviderIdentity.CLOUD_PRIMARY
    assert result.fallback_used is True
    assert gateway.calls == [ProviderIdentity.CLOUD_SECONDARY] * 4 + [ProviderIdentity.CLOUD_PRIMARY]
    assert service.metrics.snapshot().fallback_activations == 1
    assert len(notifications_of(service, NotificationType.FALLBACK)) == 1


def test_network_error_falls_back_without_retry(make_service, fake_gateway):
    gateway = fake_gateway({ProviderIdentity.CLOUD_SECONDARY: [NetworkError("unreachable")]})
    service = make_service(gateway=gateway)
    result = asyncio.run(service.process(request(LONG)))

    assert result.provider_used is ProviderIdentity.CLOUD_PRIMARY
    assert gateway.calls == [ProviderIdentity.CLOUD_SECONDARY, ProviderIdentity.CLOUD_PRIMARY]


def test_metrics_count_the_provider_that_served(make_service, fake_gateway):
    gateway = fake_gateway({ProviderIdentity.CLOUD_SECONDARY: [NetworkError("unreachable")]})
    service = make_service(gateway=gateway)
    result = asyncio.run(service.process(request(LONG), ProcessingMode.LOCAL_ONLY))

    assert result.decision.selected_provider is ProviderIdentity.CLOUD_SECONDARY
    assert result.provider_used is ProviderIdentity.LOCAL
    assert result.fallback_used is True

    metrics = service.metrics.snapshot()
    assert metrics.local_requests == 1
    assert metrics.cloud_requests == 0
    assert metrics.fallback_activations == 1
    assert metrics.average_cost_per_request == 0.0


def test_lowered_threshold_without_local_is_refused(make_service):
    service = make_service(local_ok=False)
    service.update_settings(ProcessingModeSettings(privacy_threshold=0.2))
    with pytest.raises(PrivacyViolationError):
        asyncio.run(service.process(request("Interne Notiz zum Sprint")))
    assert service.gateway.calls == []


def test_auth_error_is_terminal(make_service, fake_gateway):
    gateway = fake_gateway({ProviderIdentity.CLOUD_SECONDARY: [AuthError("bad key")]})
    service = make_service(gateway=gateway)
    with pytest.raises(AuthError):
        asyncio.run(service.process(request(LONG)))

    assert gateway.calls == [ProviderIdentity.CLOUD_SECONDARY]
    assert service.metrics.snapshot().failed_requests == 1
    assert len(notifications_of(service, NotificationType.ERROR)) == 1


def test_confidential_text_without_local_provider_is_refused(make_service):
    service = make_service(local_ok=False)
    with pytest.raises(PrivacyViolationError):
        asyncio.run(service.process(request(CONFIDENTIAL)))
    assert service.gateway.calls == []

    with pytest.raises(ProviderUnavailable):
        asyncio.run(service.process(request(CONFIDENTIAL), require_compliance=False))
    assert service.gateway.calls == []


def test_cloud_without_credentials_is_unavailable(make_service):
    service = make_service(api_keys=False)
    with pytest.raises(ProviderUnavailable):
        asyncio.run(service.process(request(), ProcessingMode.CLOUD_ONLY))


def test_offline_switches_to_local_only(make_service):
    service = make_service(online=False)
    decision = asyncio.run(service.decide(request(), ProcessingMode.CLOUD_ONLY))

    assert decision.selected_provider is ProviderIdentity.LOCAL
    assert decision.selected_mode is ProcessingMode.LOCAL_ONLY
    switches = notifications_of(service, NotificationType.MODE_SWITCH)
    assert [n.title for n in switches] == ["Offline"]


def test_offline_without_auto_switch_keeps_mode(make_service):
    service = make_service(online=False)
    service.update_settings(ProcessingModeSettings(auto_switch_enabled=False))
    decision = asyncio.run(service.decide(request(), ProcessingMode.CLOUD_ONLY))
    assert decision.selected_mode is ProcessingMode.CLOUD_ONLY
    assert notifications_of(service, NotificationType.MODE_SWITCH) == []


def test_content_rules_from_settings(make_service):
    service = make_service()
    rule = ContentRule(name="chores", pattern="plumber", required_mode=ProcessingMode.LOCAL_ONLY)
    service.update_settings(ProcessingModeSettings(preferred_mode=ProcessingMode.CLOUD_ONLY, content_rules=[rule]))

    decision = asyncio.run(service.decide(request()))
    assert decision.selected_provider is ProviderIdentity.LOCAL
    assert decision.selected_mode is ProcessingMode.LOCAL_ONLY
    assert "content rule 'chores' applied" in decision.reasoning


def test_settings_survive_restart(make_service):
    store = MemoryStore()
    make_service(store=store).update_settings(ProcessingModeSettings(preferred_mode=ProcessingMode.PRIVACY_FIRST))
    assert make_service(store=store).mode_settings.preferred_mode is ProcessingMode.PRIVACY_FIRST


def test_threshold_warnings(make_service):
    service = make_service()
    service.update_settings(ProcessingModeSettings(time_threshold=1.0, cost_threshold=0.001))
    asyncio.run(service.decide(request(LONG)))
    titles = {n.title for n in notifications_of(service, NotificationType.RECOMMENDATION)}
    assert titles == {"Cost threshold exceeded", "Time threshold exceeded"}


def test_recommendations_are_announced_once(make_service):
    service = make_service()
    for _ in range(2):
        asyncio.run(service.process(request(), ProcessingMode.CLOUD_ONLY))
    announced = [n for n in notifications_of(service, NotificationType.RECOMMENDATION) if n.title == "Recommendation"]
    assert len(announced) == 1
    assert "cloud-only" in announced[0].message

    service.reset_metrics()
    assert service.metrics.snapshot().total_requests == 0


def test_disabled_notifications(make_service):
    service = make_service(online=False)
    service.update_settings(ProcessingModeSettings(notifications_enabled=False))
    asyncio.run(service.decide(request(), ProcessingMode.CLOUD_ONLY))
    assert service.notifications.history() == []


def test_audit_log_never_holds_raw_text(make_service, tmp_path):
    service = make_service(audit=True)
    asyncio.run(service.process(request(CONFIDENTIAL)))

    lines = (tmp_path / "audit.log").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["success"] is True
    assert record["provider_used"] == "local"
    assert record["decision"]["sensitivity"] == "confidential"
    assert record["text_length"] == len(CONFIDENTIAL)
    assert "Angebot" not in lines[0]
