from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..models import Availability, ProviderIdentity
from ..settings import Settings
from .local_health import Health, check_local_health, network_interfaces_up


@dataclass(frozen=True)
class ProbeReport:
    online: bool
    local_health: Health
    availability: Availability


class ProviderAvailabilityProbe:
    """Per-provider reachability: network state plus credential presence.

    The local provider needs neither; it is available while the host has
    memory headroom.
    """

    def __init__(
        self,
        settings: Settings,
        is_online: Callable[[], bool] = network_interfaces_up,
        local_health: Callable[[], Health] | None = None,
    ):
        self.settings = settings
        self._is_online = is_online
        self._local_health = local_health or (
            lambda: check_local_health(settings.max_swap_bytes, settings.max_mem_percent)
        )

    def is_online(self) -> bool:
        return self._is_online()

    def has_credential(self, provider: ProviderIdentity) -> bool:
        if provider is ProviderIdentity.CLOUD_PRIMARY:
            return bool(self.settings.openai_api_key)
        if provider is ProviderIdentity.CLOUD_SECONDARY:
            return bool(self.settings.openrouter_api_key)
        return True

    def report(self) -> ProbeReport:
        online = self.is_online()
        health = self._local_health()
        availability = Availability(
            cloud_primary=online and self.has_credential(ProviderIdentity.CLOUD_PRIMARY),
            cloud_secondary=online and self.has_credential(ProviderIdentity.CLOUD_SECONDARY),
            local=health.ok,
        )
        return ProbeReport(online=online, local_health=health, availability=availability)

    def snapshot(self) -> Availability:
        return self.report().availability
