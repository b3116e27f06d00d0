"""
OS telemetry adapter.

Fast readings come from psutil. Slow hardware inventory comes from
platform-specific shell commands that are run with an explicit timeout
and parsed by :mod:`hwdash.parsers`. Shell-backed operations raise
``CommandError`` or ``ValueError`` on failure; the snapshot assembler
substitutes defaults.
"""

import logging
import platform
import socket
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

import psutil

from hwdash import parsers, synthetic
from hwdash.config import CommandTimeouts
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
from hwdash.shell import CommandError, run_command

logger = logging.getLogger(__name__)

Runner = Callable[[Sequence[str], float], str]
Query = tuple[list[str], Callable[[str], tuple[str, str]]]

_DMI_PATH = Path("/sys/class/dmi/id")
_AIRPORT = (
    "/System/Library/PrivateFrameworks/Apple80211.framework/"
    "Versions/Current/Resources/airport"
)


class Telemetry(Protocol):
    """Capabilities the snapshot assembler needs from the OS."""

    def cpu_core_ticks(self) -> list[CoreTicks]: ...

    def cpu_meta(self) -> CPUMeta: ...

    def memory(self) -> MemoryReading: ...

    def disk_usage(self, volume: str) -> DiskUsage: ...

    def gpu_info(self) -> GPUInfo: ...

    def network_info(self) -> NetworkInfo: ...

    def host_meta(self) -> HostMeta: ...

    def cpu_detail(self) -> CPUDetail: ...

    def memory_modules(self) -> list[MemoryModule]: ...

    def motherboard(self) -> MotherboardInfo: ...


def interface_fallback() -> NetworkInfo:
    """Approximate connectivity from the local interface list."""
    addresses = psutil.net_if_addrs()
    stats = psutil.net_if_stats()
    active = [
        name
        for name, addrs in addresses.items()
        if name in stats
        and stats[name].isup
        and any(
            addr.family == socket.AF_INET and not addr.address.startswith("127.")
            for addr in addrs
        )
    ]
    connected = bool(active)
    download, upload = synthetic.simulated_network_speeds(wireless=False)
    return NetworkInfo(
        ssid="Connected" if connected else "Not Connected",
        signal=75 if connected else 0,
        connected=connected,
        type="Ethernet",
        download_speed=download,
        upload_speed=upload,
    )


def _read_dmi(field: str) -> str | None:
    path = _DMI_PATH / field
    try:
        value = path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None
    return value or None


class SystemTelemetry:
    """Telemetry adapter for the local host (Linux, macOS, Windows)."""

    def __init__(
        self,
        timeouts: CommandTimeouts | None = None,
        runner: Runner = run_command,
        platform_name: str | None = None,
    ) -> None:
        """
        Initialize the adapter.

        Args:
            timeouts: Per-category shell timeouts.
            runner: Executes a command and returns stdout, raising
                ``CommandError`` on failure.
            platform_name: ``sys.platform`` value to dispatch on.
        """
        self._timeouts = timeouts or CommandTimeouts()
        self._run = runner
        self._platform = platform_name or sys.platform

    @property
    def platform_name(self) -> str:
        return self._platform

    # -- fast readings -------------------------------------------------

    def cpu_core_ticks(self) -> list[CoreTicks]:
        ticks = []
        for times in psutil.cpu_times(percpu=True):
            # guest time is already counted in user/nice on Linux
            total = sum(times) - getattr(times, "guest", 0.0) - getattr(times, "guest_nice", 0.0)
            ticks.append(CoreTicks(idle=times.idle, total=total))
        return ticks

    def cpu_meta(self) -> CPUMeta:
        try:
            freq = psutil.cpu_freq()
        except (OSError, NotImplementedError, RuntimeError):
            freq = None
        return CPUMeta(
            model=self._cpu_model(),
            cores=psutil.cpu_count(logical=True) or 0,
            speed_mhz=freq.current if freq and freq.current else None,
        )

    def memory(self) -> MemoryReading:
        mem = psutil.virtual_memory()
        return MemoryReading(total_bytes=mem.total, free_bytes=mem.available)

    def host_meta(self) -> HostMeta:
        return HostMeta(
            hostname=socket.gethostname() or platform.node(),
            platform=self._platform,
            arch=platform.machine(),
            uptime_seconds=max(0.0, time.time() - psutil.boot_time()),
            os_type=platform.system(),
            os_release=platform.release(),
            load_average=tuple(psutil.getloadavg()),
        )

    def _cpu_model(self) -> str:
        if self._platform.startswith("linux"):
            try:
                with open("/proc/cpuinfo", "r", encoding="utf-8") as f:
                    for line in f:
                        key, _, value = line.partition(":")
                        if key.strip() == "model name" and value.strip():
                            return value.strip()
            except OSError:
                pass
        return platform.processor().strip() or "Unknown CPU"

    # -- shell-backed readings -----------------------------------------

    def disk_usage(self, volume: str) -> DiskUsage:
        if self._platform == "win32":
            output = self._run(
                [
                    "wmic",
                    "logicaldisk",
                    "where",
                    f"DeviceID='{volume}'",
                    "get",
                    "Size,FreeSpace",
                    "/format:list",
                ],
                self._timeouts.disk,
            )
            return parsers.parse_wmic_disk(output)
        return parsers.parse_df(self._run(["df", "-k", "-P", volume], self._timeouts.disk))

    def gpu_info(self) -> GPUInfo:
        """
        Identify the primary GPU.

        Temperature and usage on the returned value are simulated.
        """
        name, memory = self._first_success(self._gpu_queries(), self._timeouts.gpu)
        return GPUInfo(
            name=name,
            memory=memory,
            temperature=synthetic.simulated_gpu_temperature(),
            usage=synthetic.simulated_gpu_usage(),
        )

    def _gpu_queries(self) -> list[Query]:
        if self._platform == "win32":
            return [
                (
                    ["wmic", "path", "win32_VideoController", "get", "Name,AdapterRAM", "/format:list"],
                    parsers.parse_wmic_gpu,
                )
            ]
        if self._platform == "darwin":
            return [(["system_profiler", "SPDisplaysDataType"], parsers.parse_system_profiler_gpu)]
        return [
            (
                ["nvidia-smi", "--query-gpu=name,memory.total", "--format=csv,noheader,nounits"],
                parsers.parse_nvidia_smi,
            ),
            (["lspci"], lambda text: (parsers.parse_lspci_gpu(text), parsers.UNKNOWN)),
        ]

    def network_info(self) -> NetworkInfo:
        """
        Describe the active connection.

        Falls back to interface enumeration when no wireless network is found
        or the wireless query fails. Throughput values are simulated.
        """
        try:
            wireless = self._wireless_network()
        except (CommandError, ValueError) as exc:
            logger.debug("Wireless query failed, using interface list: %s", exc)
            wireless = None
        if wireless is None:
            return interface_fallback()

        ssid, signal, network_type = wireless
        download, upload = synthetic.simulated_network_speeds(wireless=True)
        return NetworkInfo(
            ssid=ssid,
            signal=signal,
            connected=True,
            type=network_type,
            download_speed=download,
            upload_speed=upload,
        )

    def _wireless_network(self) -> tuple[str, int, str] | None:
        timeout = self._timeouts.network
        if self._platform == "win32":
            return parsers.parse_netsh_wlan(self._run(["netsh", "wlan", "show", "interfaces"], timeout))
        if self._platform == "darwin":
            found = parsers.parse_airport(self._run([_AIRPORT, "-I"], timeout))
        else:
            found = parsers.parse_nmcli_wifi(
                self._run(["nmcli", "-t", "-f", "ACTIVE,SSID,SIGNAL", "dev", "wifi"], timeout)
            )
        if found is None:
            return None
        return found[0], found[1], "Wi-Fi"

    def cpu_detail(self) -> CPUDetail:
        timeout = self._timeouts.hardware
        arch = platform.machine()
        if self._platform == "win32":
            output = self._run(
                [
                    "wmic",
                    "cpu",
                    "get",
                    "Name,Manufacturer,MaxClockSpeed,NumberOfCores,"
                    "NumberOfLogicalProcessors,L2CacheSize,L3CacheSize",
                    "/format:list",
                ],
                timeout,
            )
            return parsers.parse_wmic_cpu(output, arch)
        if self._platform == "darwin":
            output = self._run(
                ["sysctl", "machdep.cpu.brand_string", "hw.physicalcpu", "hw.logicalcpu", "hw.l2cachesize"],
                timeout,
            )
            return parsers.parse_sysctl_cpu(output, arch)
        return parsers.parse_lscpu(self._run(["lscpu"], timeout))

    def memory_modules(self) -> list[MemoryModule]:
        timeout = self._timeouts.hardware
        if self._platform == "win32":
            output = self._run(
                [
                    "wmic",
                    "memorychip",
                    "get",
                    "BankLabel,Capacity,Speed,MemoryType,SMBIOSMemoryType",
                    "/format:list",
                ],
                timeout,
            )
            return parsers.parse_wmic_memorychip(output)
        if self._platform.startswith("linux"):
            # Needs root; non-root runs fall back to an empty list
            return parsers.parse_dmidecode_memory(self._run(["dmidecode", "-t", "memory"], timeout))
        # No module inventory command on this platform
        return []

    def motherboard(self) -> MotherboardInfo:
        if self._platform == "win32":
            output = self._run(
                ["wmic", "baseboard", "get", "Manufacturer,Product", "/format:list"],
                self._timeouts.hardware,
            )
            return parsers.parse_wmic_baseboard(output)
        if self._platform == "darwin":
            model = self._run(["sysctl", "-n", "hw.model"], self._timeouts.hardware).strip()
            return MotherboardInfo(manufacturer="Apple", product=model or parsers.UNKNOWN)

        vendor = _read_dmi("board_vendor")
        product = _read_dmi("board_name")
        if vendor is None and product is None:
            raise ValueError(f"no DMI board information under {_DMI_PATH}")
        return MotherboardInfo(
            manufacturer=vendor or parsers.UNKNOWN,
            product=product or parsers.UNKNOWN,
        )

    def _first_success(self, queries: Sequence[Query], timeout: float) -> tuple[str, str]:
        """Run candidate queries in order and return the first parsed result."""
        last_error: Exception | None = None
        for command, parse in queries:
            try:
                return parse(self._run(command, timeout))
            except (CommandError, ValueError) as exc:
                logger.debug("%s failed: %s", command[0], exc)
                last_error = exc
        if last_error is None:
            raise CommandError(["gpu_info"], f"no query available on {self._platform}")
        raise last_error
