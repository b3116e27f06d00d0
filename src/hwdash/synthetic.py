"""
Synthetic readings.

Nothing in this module reads a sensor. CPU temperature is estimated from
usage; GPU temperature/usage and network throughput are simulated so the
gauges have something to show. The display labels all of them as such.
"""

import random

_rng = random.Random()


def seed(value: int | None) -> None:
    """Reseed the generator (used by tests for deterministic output)."""
    _rng.seed(value)


def estimated_cpu_temperature(cpu_usage: float) -> int:
    """Estimate CPU temperature: 35 °C base plus 0.4 °C per usage percent, ±2 °C jitter."""
    return round(35 + cpu_usage * 0.4 + (_rng.random() - 0.5) * 4)


def simulated_gpu_temperature(integrated: bool = False) -> int:
    """Simulated GPU temperature in °C."""
    if integrated:
        return round(30 + _rng.random() * 10)
    return round(25 + _rng.random() * 15)


def simulated_gpu_usage(integrated: bool = False) -> int:
    """Simulated GPU utilisation percent."""
    return round(_rng.random() * (20 if integrated else 30))


def simulated_network_speeds(wireless: bool) -> tuple[int, int]:
    """Simulated ``(download, upload)`` in MB/s."""
    if wireless:
        return round(_rng.random() * 50 + 10), round(_rng.random() * 20 + 5)
    return round(_rng.random() * 30 + 5), round(_rng.random() * 15 + 2)
