"""Differential CPU usage estimation."""

from typing import Protocol

from hwdash.models import CoreTicks, TickSample


class TickSource(Protocol):
    """Anything that can report per-core CPU ticks."""

    def cpu_core_ticks(self) -> list[CoreTicks]: ...


def usage_between(previous: TickSample, current: TickSample) -> float:
    """
    Compute CPU usage between two cumulative samples.

    Returns 0.0 when no time elapsed or when a counter went backwards
    (counter reset). The result is clamped to [0, 100].
    """
    idle_delta = current.idle - previous.idle
    total_delta = current.total - previous.total
    if total_delta <= 0 or idle_delta < 0:
        return 0.0
    usage = 100.0 - 100.0 * idle_delta / total_delta
    return max(0.0, min(100.0, usage))


class CpuUsageEstimator:
    """
    Estimates total CPU usage from tick counters.

    Every call is measured against the immediately preceding call, so calls
    less than about a second apart are noisy. Not reentrant: only the poll
    driver thread may call ``sample()``.
    """

    def __init__(self, source: TickSource) -> None:
        self._source = source
        self._previous: TickSample | None = None

    @property
    def previous(self) -> TickSample | None:
        """Get the stored baseline sample."""
        return self._previous

    def reset(self) -> None:
        """Drop the baseline; the next sample returns 0.0."""
        self._previous = None

    def sample(self) -> float:
        """Read the current ticks and return usage since the last call."""
        ticks = self._source.cpu_core_ticks()
        current = TickSample(
            idle=sum(core.idle for core in ticks),
            total=sum(core.total for core in ticks),
        )
        previous, self._previous = self._previous, current
        if previous is None:
            # No baseline yet
            return 0.0
        return usage_between(previous, current)
