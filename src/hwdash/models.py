"""Data models for hwdash."""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(slots=True, frozen=True)
class CoreTicks:
    """Cumulative CPU time of one core."""

    idle: float
    total: float


@dataclass(slots=True, frozen=True)
class TickSample:
    """Idle and total CPU time summed over all cores."""

    idle: float
    total: float


@dataclass(slots=True, frozen=True)
class CPUMeta:
    """Cheap CPU identification read on every poll."""

    model: str
    cores: int
    speed_mhz: float | None


@dataclass(slots=True, frozen=True)
class MemoryReading:
    """Raw memory counters in bytes."""

    total_bytes: int
    free_bytes: int


@dataclass(slots=True, frozen=True)
class DiskUsage:
    """Capacity of a single volume in bytes."""

    total_bytes: int
    free_bytes: int


@dataclass(slots=True, frozen=True)
class GPUInfo:
    """
    GPU identification.

    ``temperature`` and ``usage`` are simulated values: no GPU sensor is read.
    """

    name: str
    memory: str
    temperature: int  # synthetic, degrees Celsius
    usage: int  # synthetic, percent


@dataclass(slots=True, frozen=True)
class NetworkInfo:
    """
    Connectivity summary.

    ``download_speed`` and ``upload_speed`` (MB/s) are simulated values.
    """

    ssid: str
    signal: int  # 0 - 100
    connected: bool
    type: str
    download_speed: int  # synthetic
    upload_speed: int  # synthetic


@dataclass(slots=True, frozen=True)
class HostMeta:
    """Host identification and uptime."""

    hostname: str
    platform: str
    arch: str
    uptime_seconds: float
    os_type: str
    os_release: str
    load_average: tuple[float, float, float]


@dataclass(slots=True, frozen=True)
class CPUDetail:
    """Static CPU properties reported by the OS hardware inventory."""

    name: str = "Unknown"
    manufacturer: str = "Unknown"
    architecture: str = "Unknown"
    cores: str = "Unknown"
    logical_processors: str = "Unknown"
    max_clock_speed: str = "Unknown"
    l2_cache: str = "Unknown"
    l3_cache: str = "Unknown"


@dataclass(slots=True, frozen=True)
class MemoryModule:
    """One populated memory slot."""

    bank_label: str = "Unknown"
    capacity: str = "Unknown"
    speed: str = "Unknown"
    memory_type: str = "Unknown"


@dataclass(slots=True, frozen=True)
class MotherboardInfo:
    """Baseboard vendor and product."""

    manufacturer: str = "Unknown"
    product: str = "Unknown"


@dataclass(slots=True, frozen=True)
class DetailedHardware:
    """Hardware inventory section of a snapshot."""

    cpu: CPUDetail = field(default_factory=CPUDetail)
    memory: tuple[MemoryModule, ...] = ()
    motherboard: MotherboardInfo = field(default_factory=MotherboardInfo)


@dataclass(slots=True, frozen=True)
class PerformanceHistory:
    """Most recent CPU and memory percentages, oldest first."""

    cpu: tuple[float, ...] = ()
    memory: tuple[float, ...] = ()


@dataclass(slots=True, frozen=True)
class HardwareSnapshot:
    """Immutable, flat description of the host at one poll instant."""

    timestamp: float

    # CPU
    cpu_usage: float  # 0.0 - 100.0
    cpu_model: str
    cpu_cores: int
    cpu_speed: str
    cpu_temperature: int  # estimated from usage, not measured

    # GPU (temperature and usage are simulated)
    gpu_name: str
    gpu_memory: str
    gpu_temperature: int
    gpu_usage: int

    # Memory
    memory_usage: float  # 0.0 - 100.0
    memory_total_gb: float
    memory_used_gb: float
    memory_free_gb: float

    # Storage (primary volume)
    storage_usage: float  # 0.0 - 100.0
    storage_total_gb: float
    storage_used_gb: float
    storage_free_gb: float

    # Network (speeds are simulated)
    network_ssid: str
    network_signal: int
    network_type: str
    network_connected: bool
    download_speed: int
    upload_speed: int

    history: PerformanceHistory
    detailed_hardware: DetailedHardware

    # Host
    hostname: str
    platform: str
    architecture: str
    uptime: str
    uptime_seconds: float
    os_type: str
    os_release: str
    load_average: tuple[float, float, float]

    @property
    def network_name(self) -> str:
        """SSID when connected, otherwise ``Disconnected``."""
        return self.network_ssid if self.network_connected else "Disconnected"

    def to_dict(self) -> dict[str, Any]:
        """Convert the snapshot into a JSON-serialisable dictionary."""
        data = asdict(self)
        data["network_name"] = self.network_name
        return data


@dataclass(slots=True, frozen=True)
class PollFailure:
    """Published instead of a snapshot when a whole poll raised."""

    message: str
    error_type: str
    timestamp: float


@dataclass(slots=True, frozen=True)
class LaunchResult:
    """Outcome of an external tool launch."""

    success: bool
    message: str
