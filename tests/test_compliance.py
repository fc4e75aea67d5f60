import pytest

from src.mode_router.errors import RequestValidationError
from src.mode_router.models import Availability, ProcessingRequest, ProviderIdentity, SensitivityLevel, TaskType
from src.mode_router.policy.compliance import compliant_providers, is_compliant
from src.mode_router.policy.estimates import Estimator, estimate_cost, estimate_time

CLOUD = (ProviderIdentity.CLOUD_PRIMARY, ProviderIdentity.CLOUD_SECONDARY)


@pytest.mark.parametrize("level", list(SensitivityLevel))
def test_local_may_process_everything(level):
    assert is_compliant(ProviderIdentity.LOCAL, level)


@pytest.mark.parametrize("provider", CLOUD)
def test_cloud_limited_to_public_and_internal(provider):
    assert is_compliant(provider, SensitivityLevel.PUBLIC)
    assert is_compliant(provider, SensitivityLevel.INTERNAL)
    assert not is_compliant(provider, SensitivityLevel.CONFIDENTIAL)
    assert not is_compliant(provider, SensitivityLevel.HIGHLY_CONFIDENTIAL)


def test_compliant_providers_for_confidential_is_local_only():
    assert compliant_providers(SensitivityLevel.CONFIDENTIAL) == [ProviderIdentity.LOCAL]
    assert len(compliant_providers(SensitivityLevel.PUBLIC)) == 3


def test_sensitivity_levels_are_ordered():
    assert SensitivityLevel.PUBLIC < SensitivityLevel.INTERNAL < SensitivityLevel.CONFIDENTIAL
    assert SensitivityLevel.HIGHLY_CONFIDENTIAL >= SensitivityLevel.CONFIDENTIAL
    assert SensitivityLevel.HIGHLY_CONFIDENTIAL.privacy_risk == 1.0


def test_cost_estimates():
    assert estimate_cost(ProviderIdentity.CLOUD_PRIMARY, TaskType.SUMMARY) == pytest.approx(0.006)
    assert estimate_cost(ProviderIdentity.CLOUD_SECONDARY, TaskType.ANALYSIS) == pytest.approx(0.008)
    assert estimate_cost(ProviderIdentity.LOCAL, TaskType.ENHANCEMENT) == 0.0


def test_time_estimates():
    assert estimate_time(ProviderIdentity.CLOUD_PRIMARY, TaskType.CATEGORIZATION) == 1.0
    assert estimate_time(ProviderIdentity.LOCAL, TaskType.ANALYSIS) == 10.0


def test_estimator_falls_back_to_defaults_for_unknown_task():
    estimator = Estimator(tokens_per_task={}, duration_seconds={})
    assert estimator.estimate_cost(ProviderIdentity.CLOUD_PRIMARY, TaskType.SUMMARY) == pytest.approx(0.006)
    assert estimator.estimate_time(ProviderIdentity.LOCAL, TaskType.SUMMARY) == 3.0


def test_estimator_requires_rate_for_every_provider():
    with pytest.raises(ValueError, match="local"):
        Estimator(cost_per_1k_tokens={ProviderIdentity.CLOUD_PRIMARY: 0.03, ProviderIdentity.CLOUD_SECONDARY: 0.02})


def test_availability_requires_every_provider():
    with pytest.raises(ValueError, match="cloud-secondary"):
        Availability.from_mapping({ProviderIdentity.CLOUD_PRIMARY: True, ProviderIdentity.LOCAL: True})
    availability = Availability.from_mapping({p: True for p in ProviderIdentity})
    assert availability[ProviderIdentity.LOCAL] is True
    assert availability.as_dict() == {"cloud-primary": True, "cloud-secondary": True, "local": True}


def test_request_accepts_task_type_strings():
    request = ProcessingRequest("hello", "keyword-extraction", {"cost_priority": 1})
    assert request.task_type is TaskType.KEYWORDS
    assert request.preferences == {"cost_priority": 1.0}


@pytest.mark.parametrize(
    "kwargs",
    [
        {"text": None, "task_type": "summary"},
        {"text": "x", "task_type": "poetry"},
        {"text": "x", "task_type": "summary", "preferences": {"latency": 0.5}},
        {"text": "x", "task_type": "summary", "preferences": {"speed_priority": 1.5}},
        {"text": "x", "task_type": "summary", "preferences": {"speed_priority": True}},
    ],
)
def test_request_validation(kwargs):
    with pytest.raises(RequestValidationError):
        ProcessingRequest(**kwargs)
