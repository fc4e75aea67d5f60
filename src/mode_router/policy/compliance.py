from __future__ import annotations

from ..models import ProviderIdentity, SensitivityLevel

# provider -> sensitivity level -> may process. Not configurable.
COMPLIANCE_MATRIX: dict[ProviderIdentity, dict[SensitivityLevel, bool]] = {
    ProviderIdentity.CLOUD_PRIMARY: {
        SensitivityLevel.PUBLIC: True,
        SensitivityLevel.INTERNAL: True,
        SensitivityLevel.CONFIDENTIAL: False,
        SensitivityLevel.HIGHLY_CONFIDENTIAL: False,
    },
    ProviderIdentity.CLOUD_SECONDARY: {
        SensitivityLevel.PUBLIC: True,
        SensitivityLevel.INTERNAL: True,
        SensitivityLevel.CONFIDENTIAL: False,
        SensitivityLevel.HIGHLY_CONFIDENTIAL: False,
    },
    ProviderIdentity.LOCAL: {
        SensitivityLevel.PUBLIC: True,
        SensitivityLevel.INTERNAL: True,
        SensitivityLevel.CONFIDENTIAL: True,
        SensitivityLevel.HIGHLY_CONFIDENTIAL: True,
    },
}


def is_compliant(provider: ProviderIdentity, level: SensitivityLevel) -> bool:
    return COMPLIANCE_MATRIX[ProviderIdentity(provider)][SensitivityLevel(level)]


def compliant_providers(level: SensitivityLevel) -> list[ProviderIdentity]:
    return [provider for provider in ProviderIdentity if is_compliant(provider, level)]
