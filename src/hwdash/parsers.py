"""
Parsers for the text produced by OS hardware queries.

Every parser is a pure function over the command output. Unparsable
output raises ``ValueError``; callers decide on the fallback.
"""

import re

from hwdash.models import CPUDetail, DiskUsage, MemoryModule, MotherboardInfo

UNKNOWN = "Unknown"

_MEMORY_TYPES = {
    "20": "DDR",
    "21": "DDR2",
    "24": "DDR3",
    "26": "DDR4",
    "34": "DDR5",
}

_GPU_CLASSES = ("VGA compatible controller", "3D controller", "Display controller")
_UNESCAPED_COLON = re.compile(r"(?<!\\):")


def memory_type_name(code: str) -> str:
    """Translate an SMBIOS memory type code into a name."""
    code = code.strip()
    if not code:
        return UNKNOWN
    return _MEMORY_TYPES.get(code, f"Type {code}")


def parse_key_value_list(text: str) -> dict[str, str]:
    """
    Parse ``Key=Value`` lines (``wmic ... /format:list``).

    Lines without ``=`` and keys with an empty value are ignored.
    """
    fields: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        key, value = key.strip(), value.strip()
        if sep and key and value:
            fields[key] = value
    return fields


def parse_key_value_records(text: str) -> list[dict[str, str]]:
    """
    Parse multi-record ``Key=Value`` output.

    A new record starts whenever a key already present in the current
    record appears again.
    """
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key:
            continue
        if key in current:
            records.append(current)
            current = {}
        current[key] = value
    if current:
        records.append(current)
    return records


def parse_colon_fields(text: str) -> dict[str, str]:
    """Parse ``Key: value`` lines (``lscpu``, ``sysctl``, ``airport -I``)."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        key, value = key.strip(), value.strip()
        if sep and key and key not in fields:
            fields[key] = value
    return fields


def parse_df(text: str) -> DiskUsage:
    """
    Parse POSIX ``df -k -P <volume>`` output.

    Columns: filesystem, 1024-blocks, used, available, capacity, mountpoint.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValueError("df output has no data row")
    columns = lines[-1].split()
    if len(columns) < 6:
        raise ValueError(f"unexpected df row: {lines[-1]!r}")
    total_kb = int(columns[1])
    free_kb = int(columns[3])
    if total_kb <= 0:
        raise ValueError("df reported a zero-sized volume")
    return DiskUsage(total_bytes=total_kb * 1024, free_bytes=free_kb * 1024)


def parse_wmic_disk(text: str) -> DiskUsage:
    """Parse ``wmic logicaldisk ... get Size,FreeSpace /format:list``."""
    fields = parse_key_value_list(text)
    total = int(fields.get("Size", "0") or 0)
    free = int(fields.get("FreeSpace", "0") or 0)
    if total <= 0:
        raise ValueError("logicaldisk reported no size")
    return DiskUsage(total_bytes=total, free_bytes=free)


def parse_nvidia_smi(text: str) -> tuple[str, str]:
    """Parse ``nvidia-smi --query-gpu=name,memory.total --format=csv,noheader,nounits``."""
    for line in text.splitlines():
        parts = [part.strip() for part in line.split(",")]
        if not parts[0]:
            continue
        memory = UNKNOWN
        if len(parts) > 1 and parts[1].isdigit():
            memory = f"{parts[1]} MiB"
        return parts[0], memory
    raise ValueError("nvidia-smi reported no GPU")


def parse_lspci_gpu(text: str) -> str:
    """Return the first display controller name from ``lspci`` output."""
    for line in text.splitlines():
        for device_class in _GPU_CLASSES:
            marker = f" {device_class}: "
            if marker in line:
                name = line.split(marker, 1)[1]
                return re.sub(r"\s*\(rev [0-9a-fA-F]+\)\s*$", "", name).strip()
    raise ValueError("lspci listed no display controller")


def parse_system_profiler_gpu(text: str) -> tuple[str, str]:
    """Parse ``system_profiler SPDisplaysDataType`` output."""
    fields = parse_colon_fields(text)
    name = fields.get("Chipset Model")
    if not name:
        raise ValueError("system_profiler reported no chipset")
    memory = UNKNOWN
    for key, value in fields.items():
        if key.startswith("VRAM") and value:
            memory = value
            break
    return name, memory


def parse_wmic_gpu(text: str) -> tuple[str, str]:
    """Parse ``wmic path win32_VideoController get Name,AdapterRAM /format:list``."""
    # One record per adapter; the first named one is the primary
    fields = next((record for record in parse_key_value_records(text) if record.get("Name")), None)
    if fields is None:
        raise ValueError("win32_VideoController reported no name")
    name = fields["Name"]
    memory = UNKNOWN
    ram = fields.get("AdapterRAM", "")
    if ram.isdigit() and int(ram) > 0:
        memory = f"{round(int(ram) / 1024**3)} GB"
    return name, memory


def parse_nmcli_wifi(text: str) -> tuple[str, int] | None:
    """
    Parse ``nmcli -t -f ACTIVE,SSID,SIGNAL dev wifi``.

    Returns ``(ssid, signal)`` of the active network, or None.
    """
    for line in text.splitlines():
        fields = _UNESCAPED_COLON.split(line.strip())
        if len(fields) < 3 or fields[0] != "yes":
            continue
        ssid = fields[1].replace("\\:", ":")
        if not ssid:
            continue
        signal = int(fields[2]) if fields[2].isdigit() else 75
        return ssid, signal
    return None


def parse_netsh_wlan(text: str) -> tuple[str, int, str] | None:
    """
    Parse ``netsh wlan show interfaces``.

    Returns ``(ssid, signal, radio_type)`` or None when not associated.
    """
    ssid_match = re.search(r"^\s*SSID\s*:\s*(.+)$", text, re.MULTILINE)
    if not ssid_match:
        return None
    signal_match = re.search(r"^\s*Signal\s*:\s*(\d+)%", text, re.MULTILINE)
    radio_match = re.search(r"^\s*Radio type\s*:\s*(.+)$", text, re.MULTILINE)
    signal = int(signal_match.group(1)) if signal_match else 75
    radio = radio_match.group(1).strip() if radio_match else "802.11n"
    return ssid_match.group(1).strip(), signal, radio


def parse_airport(text: str) -> tuple[str, int] | None:
    """
    Parse macOS ``airport -I``.

    Signal percent is derived from RSSI: -100 dBm is 0%, -50 dBm is 100%.
    """
    fields = parse_colon_fields(text)
    ssid = fields.get("SSID")
    if not ssid:
        return None
    signal = 75
    rssi = fields.get("agrCtlRSSI", "")
    if re.fullmatch(r"-?\d+", rssi):
        signal = max(0, min(100, 2 * (int(rssi) + 100)))
    return ssid, signal


def parse_lscpu(text: str) -> CPUDetail:
    """Parse Linux ``lscpu`` output."""
    fields = parse_colon_fields(text)
    if not fields:
        raise ValueError("lscpu produced no fields")
    cores = UNKNOWN
    per_socket = fields.get("Core(s) per socket", "")
    sockets = fields.get("Socket(s)", "")
    if per_socket.isdigit() and sockets.isdigit():
        cores = str(int(per_socket) * int(sockets))
    max_mhz = fields.get("CPU max MHz", "")
    return CPUDetail(
        name=fields.get("Model name", UNKNOWN),
        manufacturer=fields.get("Vendor ID", UNKNOWN),
        architecture=fields.get("Architecture", UNKNOWN),
        cores=cores,
        logical_processors=fields.get("CPU(s)", UNKNOWN),
        max_clock_speed=f"{float(max_mhz):.0f} MHz" if _is_number(max_mhz) else UNKNOWN,
        l2_cache=fields.get("L2 cache", UNKNOWN),
        l3_cache=fields.get("L3 cache", UNKNOWN),
    )


def parse_sysctl_cpu(text: str, architecture: str) -> CPUDetail:
    """Parse macOS ``sysctl machdep.cpu.brand_string hw.physicalcpu ...``."""
    fields = parse_colon_fields(text)
    name = fields.get("machdep.cpu.brand_string")
    if not name:
        raise ValueError("sysctl reported no CPU brand")
    frequency = fields.get("hw.cpufrequency_max", "")
    return CPUDetail(
        name=name,
        manufacturer=fields.get("machdep.cpu.vendor", "Apple" if "Apple" in name else UNKNOWN),
        architecture=architecture or UNKNOWN,
        cores=fields.get("hw.physicalcpu", UNKNOWN),
        logical_processors=fields.get("hw.logicalcpu", UNKNOWN),
        max_clock_speed=f"{int(frequency) // 1_000_000} MHz" if frequency.isdigit() else UNKNOWN,
        l2_cache=_bytes_label(fields.get("hw.l2cachesize", "")),
        l3_cache=_bytes_label(fields.get("hw.l3cachesize", "")),
    )


def parse_wmic_cpu(text: str, architecture: str) -> CPUDetail:
    """Parse ``wmic cpu get Name,Manufacturer,MaxClockSpeed,... /format:list``."""
    fields = parse_key_value_list(text)
    if not fields:
        raise ValueError("wmic cpu produced no fields")
    max_clock = fields.get("MaxClockSpeed")
    l2 = fields.get("L2CacheSize", "")
    l3 = fields.get("L3CacheSize", "")
    return CPUDetail(
        name=fields.get("Name", UNKNOWN),
        manufacturer=fields.get("Manufacturer", UNKNOWN),
        architecture=architecture or UNKNOWN,
        cores=fields.get("NumberOfCores", UNKNOWN),
        logical_processors=fields.get("NumberOfLogicalProcessors", UNKNOWN),
        max_clock_speed=f"{max_clock} MHz" if max_clock else UNKNOWN,
        l2_cache=f"{l2} KB" if l2.isdigit() and l2 != "0" else UNKNOWN,
        l3_cache=f"{l3} KB" if l3.isdigit() and l3 != "0" else UNKNOWN,
    )


def parse_dmidecode_memory(text: str) -> list[MemoryModule]:
    """Parse ``dmidecode -t memory``, skipping empty slots."""
    modules: list[MemoryModule] = []
    for block in re.split(r"\n\s*\n", text):
        if "Memory Device" not in block:
            continue
        fields = parse_colon_fields(block)
        size = fields.get("Size", "")
        if not size or size.startswith("No Module") or size in ("0", "Unknown"):
            continue
        speed = fields.get("Configured Memory Speed") or fields.get("Speed", "")
        modules.append(
            MemoryModule(
                bank_label=fields.get("Bank Locator") or fields.get("Locator") or UNKNOWN,
                capacity=_dmidecode_size(size),
                speed=_dmidecode_speed(speed),
                memory_type=fields.get("Type", UNKNOWN) or UNKNOWN,
            )
        )
    return modules


def parse_wmic_memorychip(text: str) -> list[MemoryModule]:
    """Parse ``wmic memorychip get BankLabel,Capacity,Speed,MemoryType,... /format:list``."""
    modules: list[MemoryModule] = []
    for record in parse_key_value_records(text):
        capacity = record.get("Capacity", "")
        speed = record.get("Speed", "")
        type_code = record.get("MemoryType", "")
        if type_code in ("", "0"):
            type_code = record.get("SMBIOSMemoryType", type_code)
        modules.append(
            MemoryModule(
                bank_label=record.get("BankLabel") or UNKNOWN,
                capacity=f"{round(int(capacity) / 1024**3)} GB" if capacity.isdigit() else UNKNOWN,
                speed=f"{speed} MHz" if speed.isdigit() else UNKNOWN,
                memory_type=memory_type_name(type_code),
            )
        )
    return modules


def parse_wmic_baseboard(text: str) -> MotherboardInfo:
    """Parse ``wmic baseboard get Manufacturer,Product /format:list``."""
    fields = parse_key_value_list(text)
    return MotherboardInfo(
        manufacturer=fields.get("Manufacturer", UNKNOWN),
        product=fields.get("Product", UNKNOWN),
    )


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


def _bytes_label(value: str) -> str:
    if not value.isdigit() or value == "0":
        return UNKNOWN
    size = int(value)
    if size >= 1024**2:
        return f"{size // 1024**2} MiB"
    return f"{size // 1024} KiB"


def _dmidecode_size(size: str) -> str:
    match = re.match(r"(\d+)\s*(MB|GB|TB)", size)
    if not match:
        return UNKNOWN
    amount, unit = int(match.group(1)), match.group(2)
    if unit == "MB":
        return f"{round(amount / 1024)} GB"
    if unit == "TB":
        return f"{amount * 1024} GB"
    return f"{amount} GB"


def _dmidecode_speed(speed: str) -> str:
    match = re.match(r"(\d+)", speed)
    return f"{match.group(1)} MHz" if match else UNKNOWN
