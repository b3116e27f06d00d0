"""Snapshot assembly and the background poll driver for hwdash."""

import logging
import threading
import time
from collections import defaultdict
from collections.abc import Callable
from queue import Queue
from typing import TypeVar

from hwdash import synthetic
from hwdash.cache import ExpensiveCallCache
from hwdash.config import DashboardConfig
from hwdash.cpu import CpuUsageEstimator
from hwdash.history import HistoryBuffer
from hwdash.models import (
    CPUDetail,
    CPUMeta,
    DetailedHardware,
    DiskUsage,
    GPUInfo,
    HardwareSnapshot,
    HostMeta,
    MemoryReading,
    MotherboardInfo,
    NetworkInfo,
    PerformanceHistory,
    PollFailure,
)
from hwdash.telemetry import SystemTelemetry, Telemetry

logger = logging.getLogger(__name__)

T = TypeVar("T")

PollResult = HardwareSnapshot | PollFailure

GPU_CACHE_KEY = "gpu"
NETWORK_CACHE_KEY = "network"

# (usage %, total GB, used GB, free GB) shown when the volume cannot be read
STORAGE_FALLBACK = (45.0, 500.0, 225.0, 275.0)

_GB = 1024**3


def format_uptime(seconds: float) -> str:
    """Format uptime as ``1d 2h 3m``, ``2h 3m`` or ``3m``."""
    seconds = max(0, int(seconds))
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_cpu_speed(speed_mhz: float | None) -> str:
    """Format a clock speed in MHz as ``3.6 GHz``."""
    if not speed_mhz:
        return "Unknown"
    return f"{speed_mhz / 1000:.1f} GHz"


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def _default_gpu() -> GPUInfo:
    return GPUInfo(
        name="Integrated Graphics",
        memory="Shared",
        temperature=synthetic.simulated_gpu_temperature(integrated=True),
        usage=synthetic.simulated_gpu_usage(integrated=True),
    )


def _default_network() -> NetworkInfo:
    return NetworkInfo(
        ssid="Not Connected",
        signal=0,
        connected=False,
        type="Ethernet",
        download_speed=0,
        upload_speed=0,
    )


def _default_host() -> HostMeta:
    return HostMeta(
        hostname="unknown",
        platform="unknown",
        arch="unknown",
        uptime_seconds=0.0,
        os_type="unknown",
        os_release="unknown",
        load_average=(0.0, 0.0, 0.0),
    )


class SnapshotAssembler:
    """
    Builds one :class:`HardwareSnapshot` per poll.

    CPU, memory, disk and hardware inventory are read fresh on every poll;
    GPU and network lookups go through the expensive-call cache. Every
    sub-fetch is isolated: a failure is logged, counted, and replaced with
    a documented default so the remaining fields still populate.

    Owns the CPU baseline, the cache and both history buffers. Not thread
    safe: exactly one poll driver may call :meth:`poll`.
    """

    def __init__(
        self,
        telemetry: Telemetry,
        config: DashboardConfig | None = None,
        cache: ExpensiveCallCache | None = None,
    ) -> None:
        self._telemetry = telemetry
        self._config = config or DashboardConfig()
        self._estimator = CpuUsageEstimator(telemetry)
        self._cache = cache or ExpensiveCallCache()
        history_size = self._config.polling.history_size
        self._cpu_history = HistoryBuffer(history_size)
        self._memory_history = HistoryBuffer(history_size)
        self._provider_failures: defaultdict[str, int] = defaultdict(int)

    @property
    def telemetry(self) -> Telemetry:
        return self._telemetry

    @property
    def provider_failures(self) -> dict[str, int]:
        """Failure count per sub-fetch since start."""
        return dict(self._provider_failures)

    @property
    def cpu_history(self) -> list[float]:
        return self._cpu_history.snapshot()

    @property
    def memory_history(self) -> list[float]:
        return self._memory_history.snapshot()

    def poll(self) -> HardwareSnapshot:
        """Sample the host and assemble a snapshot."""
        telemetry = self._telemetry
        ttl_ms = self._config.polling.cache_ttl_ms

        cpu_usage = self._isolated("cpu", self._estimator.sample, lambda: None)
        memory = self._isolated("memory", telemetry.memory, lambda: None)
        gpu = self._cached("gpu", GPU_CACHE_KEY, ttl_ms, telemetry.gpu_info, _default_gpu)
        network = self._cached("network", NETWORK_CACHE_KEY, ttl_ms, telemetry.network_info, _default_network)
        volume = self._config.storage.volume
        storage = self._isolated(
            "disk",
            lambda: self._storage_fields(telemetry.disk_usage(volume)),
            lambda: STORAGE_FALLBACK,
        )
        host = self._isolated("host", telemetry.host_meta, _default_host)
        cpu_meta = self._isolated(
            "cpu_meta", telemetry.cpu_meta, lambda: CPUMeta(model="Unknown CPU", cores=0, speed_mhz=None)
        )
        hardware = DetailedHardware(
            cpu=self._isolated("cpu_detail", telemetry.cpu_detail, CPUDetail),
            memory=tuple(self._isolated("memory_modules", telemetry.memory_modules, list)),
            motherboard=self._isolated("motherboard", telemetry.motherboard, MotherboardInfo),
        )

        # Failed readings are not recorded as history
        if cpu_usage is not None:
            cpu_usage = _clamp_percent(cpu_usage)
            self._cpu_history.push(cpu_usage)
        memory_usage, total_gb, used_gb, free_gb = self._memory_fields(memory)
        if memory is not None:
            self._memory_history.push(memory_usage)

        cpu_usage = cpu_usage or 0.0
        storage_usage, storage_total, storage_used, storage_free = storage

        return HardwareSnapshot(
            timestamp=time.time(),
            cpu_usage=cpu_usage,
            cpu_model=cpu_meta.model,
            cpu_cores=cpu_meta.cores,
            cpu_speed=format_cpu_speed(cpu_meta.speed_mhz),
            cpu_temperature=synthetic.estimated_cpu_temperature(cpu_usage),
            gpu_name=gpu.name,
            gpu_memory=gpu.memory,
            gpu_temperature=gpu.temperature,
            gpu_usage=gpu.usage,
            memory_usage=memory_usage,
            memory_total_gb=total_gb,
            memory_used_gb=used_gb,
            memory_free_gb=free_gb,
            storage_usage=storage_usage,
            storage_total_gb=storage_total,
            storage_used_gb=storage_used,
            storage_free_gb=storage_free,
            network_ssid=network.ssid,
            network_signal=network.signal,
            network_type=network.type,
            network_connected=network.connected,
            download_speed=network.download_speed,
            upload_speed=network.upload_speed,
            history=PerformanceHistory(
                cpu=tuple(self._cpu_history.snapshot()),
                memory=tuple(self._memory_history.snapshot()),
            ),
            detailed_hardware=hardware,
            hostname=host.hostname,
            platform=host.platform,
            architecture=host.arch,
            uptime=format_uptime(host.uptime_seconds),
            uptime_seconds=host.uptime_seconds,
            os_type=host.os_type,
            os_release=host.os_release,
            load_average=host.load_average,
        )

    def _cached(
        self,
        key: str,
        cache_key: str,
        ttl_ms: float,
        fetch: Callable[[], T],
        fallback: Callable[[], T],
    ) -> T:
        """Cached sub-fetch; a fallback value is cached like a real one."""
        return self._cache.get_or_refresh(cache_key, ttl_ms, lambda: self._isolated(key, fetch, fallback))

    def _isolated(self, key: str, fetch: Callable[[], T], fallback: Callable[[], T]) -> T:
        """Run a sub-fetch, substituting ``fallback()`` if it raises."""
        try:
            return fetch()
        except Exception as exc:
            self._provider_failures[key] += 1
            if self._provider_failures[key] == 1:
                logger.warning("Provider '%s' failed, using defaults: %s", key, exc)
            else:
                logger.debug("Provider '%s' failed again: %s", key, exc)
            return fallback()

    @staticmethod
    def _memory_fields(memory: MemoryReading | None) -> tuple[float, float, float, float]:
        if memory is None or memory.total_bytes <= 0:
            return 0.0, 0.0, 0.0, 0.0
        free = max(0, min(memory.free_bytes, memory.total_bytes))
        used = memory.total_bytes - free
        return (
            _clamp_percent(used / memory.total_bytes * 100),
            round(memory.total_bytes / _GB, 1),
            round(used / _GB, 1),
            round(free / _GB, 1),
        )

    @staticmethod
    def _storage_fields(disk: DiskUsage) -> tuple[float, float, float, float]:
        if disk.total_bytes <= 0:
            raise ValueError("volume reported no capacity")
        free = max(0, min(disk.free_bytes, disk.total_bytes))
        used = disk.total_bytes - free
        return (
            _clamp_percent(round(used / disk.total_bytes * 100, 2)),
            round(disk.total_bytes / _GB, 1),
            round(used / _GB, 1),
            round(free / _GB, 1),
        )


class SystemMonitor:
    """
    Poll driver that runs the snapshot assembler on a fixed interval.

    Runs in a separate daemon thread and pushes each result to a thread-safe
    Queue. Polls run back to back in that one thread, so they never overlap:
    a tick that falls inside a slow poll is skipped.
    """

    def __init__(
        self,
        update_queue: Queue[PollResult],
        assembler: SnapshotAssembler | None = None,
        poll_rate: float = 2.0,
    ) -> None:
        """
        Initialize the SystemMonitor.

        Args:
            update_queue: Thread-safe queue to push results to.
            assembler: Snapshot assembler; defaults to one over the local host.
            poll_rate: How often to poll the system (in seconds). Default 2.0s.
        """
        self._queue = update_queue
        self._assembler = assembler or SnapshotAssembler(SystemTelemetry())
        self._poll_rate = max(0.1, poll_rate)
        self._stop_event = threading.Event()
        self._wake = threading.Event()
        self._paused = threading.Event()
        self._refresh_requested = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def assembler(self) -> SnapshotAssembler:
        return self._assembler

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_paused(self) -> bool:
        return self._paused.is_set()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="SystemMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def pause(self) -> None:
        """Stop scheduling polls. A poll already running completes."""
        self._paused.set()

    def resume(self) -> None:
        """Resume scheduled polling."""
        self._paused.clear()
        self._wake.set()

    def toggle_pause(self) -> bool:
        """Toggle auto-refresh and return True if now paused."""
        if self.is_paused:
            self.resume()
        else:
            self.pause()
        return self.is_paused

    def request_refresh(self) -> None:
        """Poll as soon as possible, even while paused."""
        self._refresh_requested.set()
        self._wake.set()

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            self._wake.clear()
            refresh = self._refresh_requested.is_set()
            self._refresh_requested.clear()

            if refresh or not self._paused.is_set():
                self._publish()

            # Wait for poll_rate seconds or until woken
            self._wake.wait(timeout=self._poll_rate)

    def _publish(self) -> None:
        """Run one poll and queue its result."""
        try:
            result: PollResult = self._assembler.poll()
        except Exception as exc:
            logger.exception("Poll failed")
            result = PollFailure(
                message=str(exc) or exc.__class__.__name__,
                error_type=exc.__class__.__name__,
                timestamp=time.time(),
            )
        self._queue.put(result)
