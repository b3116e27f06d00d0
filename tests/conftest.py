"""Shared fixtures: an in-memory telemetry fake with no OS dependency."""

import pytest

from hwdash import synthetic
from hwdash.models import (
    CoreTicks,
    CPUDetail,
    CPUMeta,
    DiskUsage,
    GPUInfo,
    HostMeta,
    MemoryModule,
    MemoryReading,
    MotherboardInfo,
    NetworkInfo,
)

GB = 1024**3


class FakeTelemetry:
    """
    Telemetry double driven by plain attributes.

    ``ticks`` is a list of per-core tick lists consumed one per call; the
    last entry repeats once exhausted. Any name in ``failing`` raises.
    """

    def __init__(self) -> None:
        self.ticks: list[list[CoreTicks]] = [[CoreTicks(idle=1000.0, total=10000.0)]]
        self.memory_reading = MemoryReading(total_bytes=16 * GB, free_bytes=4 * GB)
        self.disk = DiskUsage(total_bytes=500 * GB, free_bytes=200 * GB)
        self.gpu = GPUInfo(name="Test GPU", memory="8192 MiB", temperature=40, usage=10)
        self.network = NetworkInfo(
            ssid="HomeNet",
            signal=80,
            connected=True,
            type="Wi-Fi",
            download_speed=20,
            upload_speed=8,
        )
        self.host = HostMeta(
            hostname="testhost",
            platform="linux",
            arch="x86_64",
            uptime_seconds=93784.0,
            os_type="Linux",
            os_release="6.1.0",
            load_average=(1.0, 0.5, 0.25),
        )
        self.meta = CPUMeta(model="Test CPU", cores=8, speed_mhz=3600.0)
        self.detail = CPUDetail(name="Test CPU", manufacturer="TestCorp", architecture="x86_64")
        self.modules = [MemoryModule(bank_label="BANK 0", capacity="16 GB", speed="3200 MHz", memory_type="DDR4")]
        self.board = MotherboardInfo(manufacturer="BoardCo", product="B550")
        self.failing: set[str] = set()
        self.calls: dict[str, int] = {}
        self.volumes: list[str] = []

    def _call(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.failing:
            raise RuntimeError(f"{name} unavailable")

    def cpu_core_ticks(self) -> list[CoreTicks]:
        self._call("cpu_core_ticks")
        if len(self.ticks) > 1:
            return self.ticks.pop(0)
        return self.ticks[0]

    def cpu_meta(self) -> CPUMeta:
        self._call("cpu_meta")
        return self.meta

    def memory(self) -> MemoryReading:
        self._call("memory")
        return self.memory_reading

    def disk_usage(self, volume: str) -> DiskUsage:
        self._call("disk_usage")
        self.volumes.append(volume)
        return self.disk

    def gpu_info(self) -> GPUInfo:
        self._call("gpu_info")
        return self.gpu

    def network_info(self) -> NetworkInfo:
        self._call("network_info")
        return self.network

    def host_meta(self) -> HostMeta:
        self._call("host_meta")
        return self.host

    def cpu_detail(self) -> CPUDetail:
        self._call("cpu_detail")
        return self.detail

    def memory_modules(self) -> list[MemoryModule]:
        self._call("memory_modules")
        return list(self.modules)

    def motherboard(self) -> MotherboardInfo:
        self._call("motherboard")
        return self.board


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def fake_telemetry() -> FakeTelemetry:
    return FakeTelemetry()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def deterministic_synthetic():
    """Seed the synthetic value generator for every test."""
    synthetic.seed(1234)
    yield
    synthetic.seed(None)
