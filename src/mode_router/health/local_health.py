from dataclasses import dataclass

import psutil


@dataclass(frozen=True)
class Health:
    ok: bool
    reason: str | None = None


def check_local_health(max_swap_bytes: int, max_mem_percent: float) -> Health:
    """Whether this host has headroom to run the local model."""
    swap = psutil.swap_memory()
    if swap.used > max_swap_bytes:
        return Health(False, f"swap_used={swap.used}")

    vm = psutil.virtual_memory()
    if vm.percent >= max_mem_percent:
        return Health(False, f"mem_percent={vm.percent}")

    return Health(True, None)


def network_interfaces_up() -> bool:
    """True when any non-loopback interface is up."""
    for name, stats in psutil.net_if_stats().items():
        if stats.isup and not name.startswith("lo"):
            return True
    return False
