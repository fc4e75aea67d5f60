from __future__ import annotations

import re
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import ProcessingMode, ProviderIdentity


class ContentRule(BaseModel):
    """User override: text matching ``pattern`` must run in ``required_mode``."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    pattern: str
    required_mode: ProcessingMode
    priority: int = 0
    active: bool = True

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regular expression: {exc}") from exc
        return value

    def matches(self, text: str) -> bool:
        return re.search(self.pattern, text) is not None


# Provider implied by a rule's required mode
MODE_PROVIDER: dict[ProcessingMode, ProviderIdentity] = {
    ProcessingMode.LOCAL_ONLY: ProviderIdentity.LOCAL,
    ProcessingMode.PRIVACY_FIRST: ProviderIdentity.LOCAL,
    ProcessingMode.CLOUD_ONLY: ProviderIdentity.CLOUD_SECONDARY,
    ProcessingMode.COST_OPTIMIZED: ProviderIdentity.CLOUD_SECONDARY,
    ProcessingMode.HYBRID: ProviderIdentity.CLOUD_PRIMARY,
}


def first_matching_rule(rules: Iterable[ContentRule], text: str) -> ContentRule | None:
    """Highest-priority active rule matching ``text``; ties keep declaration order."""
    ordered = sorted((rule for rule in rules if rule.active), key=lambda rule: -rule.priority)
    for rule in ordered:
        if rule.matches(text):
            return rule
    return None
