"""Tests for the OS command output parsers."""

import pytest

from hwdash import parsers
from hwdash.models import DiskUsage

WMIC_CPU = """\r
\r
L2CacheSize=4096\r
L3CacheSize=16384\r
Manufacturer=GenuineIntel\r
MaxClockSpeed=3600\r
Name=Intel(R) Core(TM) i7-9700K CPU @ 3.60GHz\r
NumberOfCores=8\r
NumberOfLogicalProcessors=8\r
\r
"""

WMIC_MEMORY = """\
BankLabel=BANK 0
Capacity=17179869184
MemoryType=0
SMBIOSMemoryType=26
Speed=3200

BankLabel=BANK 2
Capacity=17179869184
MemoryType=24
SMBIOSMemoryType=24
Speed=1600
"""

LSCPU = """\
Architecture:                    x86_64
CPU op-mode(s):                  32-bit, 64-bit
CPU(s):                          16
On-line CPU(s) list:             0-15
Vendor ID:                       AuthenticAMD
Model name:                      AMD Ryzen 7 5800X 8-Core Processor
Thread(s) per core:              2
Core(s) per socket:              8
Socket(s):                       1
CPU max MHz:                     4850.1948
L2 cache:                        4 MiB (8 instances)
L3 cache:                        32 MiB (1 instance)
"""

DMIDECODE = """\
# dmidecode 3.4
Handle 0x0010, DMI type 17, 92 bytes
Memory Device
\tTotal Width: 64 bits
\tSize: 16 GB
\tLocator: DIMM_A1
\tBank Locator: BANK 0
\tType: DDR4
\tSpeed: 3200 MT/s
\tConfigured Memory Speed: 3000 MT/s

Handle 0x0011, DMI type 17, 92 bytes
Memory Device
\tSize: No Module Installed
\tLocator: DIMM_A2
\tBank Locator: BANK 1
\tType: Unknown

Handle 0x0012, DMI type 17, 92 bytes
Memory Device
\tSize: 8192 MB
\tLocator: DIMM_B1
\tType: DDR4
\tSpeed: 2666 MT/s
"""

NETSH = """\
There is 1 interface on the system:

    Name                   : Wi-Fi
    Description            : Intel(R) Wi-Fi 6 AX201 160MHz
    State                  : connected
    SSID                   : CoffeeShop
    BSSID                  : aa:bb:cc:dd:ee:ff
    Network type           : Infrastructure
    Radio type             : 802.11ax
    Signal                 : 88%
"""


class TestKeyValue:
    """Tests for the wmic list format helpers."""

    def test_parse_key_value_list(self):
        """Test Key=Value lines with CRLF noise."""
        fields = parsers.parse_key_value_list(WMIC_CPU)
        assert fields["Manufacturer"] == "GenuineIntel"
        assert fields["NumberOfCores"] == "8"

    def test_empty_values_are_ignored(self):
        """Test keys without values are dropped."""
        assert parsers.parse_key_value_list("Name=\nSize=10\nnoise") == {"Size": "10"}

    def test_records_split_on_repeated_key(self):
        """Test a repeated key starts a new record."""
        records = parsers.parse_key_value_records(WMIC_MEMORY)
        assert len(records) == 2
        assert records[1]["BankLabel"] == "BANK 2"

    def test_memory_type_names(self):
        """Test SMBIOS memory type codes."""
        assert parsers.memory_type_name("26") == "DDR4"
        assert parsers.memory_type_name("34") == "DDR5"
        assert parsers.memory_type_name("99") == "Type 99"
        assert parsers.memory_type_name("") == "Unknown"


class TestDisk:
    """Tests for disk usage parsers."""

    def test_parse_df(self):
        """Test POSIX df output in 1K blocks."""
        text = (
            "Filesystem     1024-blocks      Used Available Capacity Mounted on\n"
            "/dev/nvme0n1p2   487652352 200000000 262000000      44% /\n"
        )
        assert parsers.parse_df(text) == DiskUsage(
            total_bytes=487652352 * 1024, free_bytes=262000000 * 1024
        )

    def test_parse_df_without_data_row(self):
        """Test df output with only a header is rejected."""
        with pytest.raises(ValueError):
            parsers.parse_df("Filesystem 1024-blocks Used Available Capacity Mounted on\n")

    def test_parse_wmic_disk(self):
        """Test wmic logicaldisk output."""
        usage = parsers.parse_wmic_disk("FreeSpace=100\r\nSize=400\r\n")
        assert usage == DiskUsage(total_bytes=400, free_bytes=100)

    def test_parse_wmic_disk_missing_size(self):
        """Test wmic output without Size is rejected."""
        with pytest.raises(ValueError):
            parsers.parse_wmic_disk("FreeSpace=100\r\n")


class TestGpu:
    """Tests for GPU parsers."""

    def test_parse_nvidia_smi(self):
        """Test nvidia-smi csv output."""
        assert parsers.parse_nvidia_smi("NVIDIA GeForce RTX 3080, 10240\n") == (
            "NVIDIA GeForce RTX 3080",
            "10240 MiB",
        )

    def test_parse_nvidia_smi_empty(self):
        """Test empty nvidia-smi output is rejected."""
        with pytest.raises(ValueError):
            parsers.parse_nvidia_smi("\n")

    def test_parse_lspci(self):
        """Test the display controller name is extracted without revision."""
        text = (
            "00:00.0 Host bridge: Intel Corporation Device 9b61 (rev 0c)\n"
            "00:02.0 VGA compatible controller: Intel Corporation UHD Graphics (rev 02)\n"
        )
        assert parsers.parse_lspci_gpu(text) == "Intel Corporation UHD Graphics"

    def test_parse_lspci_3d_controller(self):
        """Test 3D controllers are recognised."""
        text = "01:00.0 3D controller: NVIDIA Corporation GA107M [GeForce RTX 3050 Mobile] (rev a1)\n"
        assert parsers.parse_lspci_gpu(text) == "NVIDIA Corporation GA107M [GeForce RTX 3050 Mobile]"

    def test_parse_lspci_without_gpu(self):
        """Test lspci output without a display device is rejected."""
        with pytest.raises(ValueError):
            parsers.parse_lspci_gpu("00:00.0 Host bridge: Intel Corporation Device\n")

    def test_parse_system_profiler(self):
        """Test macOS display report."""
        text = (
            "Graphics/Displays:\n\n    Apple M1:\n\n      Chipset Model: Apple M1\n"
            "      Type: GPU\n      VRAM (Dynamic, Max): 1536 MB\n"
        )
        assert parsers.parse_system_profiler_gpu(text) == ("Apple M1", "1536 MB")

    def test_parse_wmic_gpu(self):
        """Test Windows video controller with adapter RAM."""
        text = "AdapterRAM=4293918720\r\nName=NVIDIA GeForce GTX 1650\r\n"
        assert parsers.parse_wmic_gpu(text) == ("NVIDIA GeForce GTX 1650", "4 GB")

    def test_parse_wmic_gpu_first_adapter(self):
        """Test the first of several controllers is reported with its own RAM."""
        text = (
            "\r\n\r\nAdapterRAM=1073741824\r\nName=Intel(R) UHD Graphics 630\r\n\r\n\r\n"
            "AdapterRAM=4293918720\r\nName=NVIDIA GeForce GTX 1650\r\n\r\n"
        )
        assert parsers.parse_wmic_gpu(text) == ("Intel(R) UHD Graphics 630", "1 GB")

    def test_parse_wmic_gpu_without_ram(self):
        """Test a controller without AdapterRAM reports Unknown memory."""
        assert parsers.parse_wmic_gpu("Name=Microsoft Basic Display Adapter\r\n") == (
            "Microsoft Basic Display Adapter",
            "Unknown",
        )


class TestNetwork:
    """Tests for wireless network parsers."""

    def test_parse_nmcli_active(self):
        """Test the active network is picked from nmcli terse output."""
        text = "no:Neighbour:40\nyes:Home\\:Net:72\nno::20\n"
        assert parsers.parse_nmcli_wifi(text) == ("Home:Net", 72)

    def test_parse_nmcli_none_active(self):
        """Test no active network returns None."""
        assert parsers.parse_nmcli_wifi("no:Neighbour:40\n") is None

    def test_parse_netsh(self):
        """Test netsh output, ignoring the BSSID line."""
        assert parsers.parse_netsh_wlan(NETSH) == ("CoffeeShop", 88, "802.11ax")

    def test_parse_netsh_disconnected(self):
        """Test an interface without SSID returns None."""
        assert parsers.parse_netsh_wlan("    State : disconnected\n") is None

    def test_parse_netsh_defaults(self):
        """Test missing signal and radio type fall back to defaults."""
        assert parsers.parse_netsh_wlan("    SSID : Office\n") == ("Office", 75, "802.11n")

    def test_parse_airport(self):
        """Test RSSI is converted to a percentage."""
        text = "     agrCtlRSSI: -55\n     BSSID: aa:bb:cc:dd:ee:ff\n           SSID: Cafe\n"
        assert parsers.parse_airport(text) == ("Cafe", 90)

    def test_parse_airport_disassociated(self):
        """Test airport output without SSID returns None."""
        assert parsers.parse_airport("AirPort: Off\n") is None


class TestHardware:
    """Tests for CPU, memory module and motherboard parsers."""

    def test_parse_lscpu(self):
        """Test Linux lscpu output."""
        detail = parsers.parse_lscpu(LSCPU)
        assert detail.name == "AMD Ryzen 7 5800X 8-Core Processor"
        assert detail.manufacturer == "AuthenticAMD"
        assert detail.architecture == "x86_64"
        assert detail.cores == "8"
        assert detail.logical_processors == "16"
        assert detail.max_clock_speed == "4850 MHz"
        assert detail.l2_cache == "4 MiB (8 instances)"
        assert detail.l3_cache == "32 MiB (1 instance)"

    def test_parse_lscpu_empty(self):
        """Test empty lscpu output is rejected."""
        with pytest.raises(ValueError):
            parsers.parse_lscpu("")

    def test_parse_wmic_cpu(self):
        """Test Windows CPU inventory."""
        detail = parsers.parse_wmic_cpu(WMIC_CPU, "AMD64")
        assert detail.name == "Intel(R) Core(TM) i7-9700K CPU @ 3.60GHz"
        assert detail.architecture == "AMD64"
        assert detail.max_clock_speed == "3600 MHz"
        assert detail.l2_cache == "4096 KB"
        assert detail.l3_cache == "16384 KB"

    def test_parse_sysctl_cpu(self):
        """Test macOS sysctl output."""
        text = (
            "machdep.cpu.brand_string: Apple M1\nhw.physicalcpu: 8\n"
            "hw.logicalcpu: 8\nhw.l2cachesize: 4194304\n"
        )
        detail = parsers.parse_sysctl_cpu(text, "arm64")
        assert detail.name == "Apple M1"
        assert detail.manufacturer == "Apple"
        assert detail.cores == "8"
        assert detail.l2_cache == "4 MiB"
        assert detail.l3_cache == "Unknown"

    def test_parse_wmic_memorychip(self):
        """Test memory modules, preferring SMBIOS type when MemoryType is 0."""
        modules = parsers.parse_wmic_memorychip(WMIC_MEMORY)
        assert len(modules) == 2
        assert modules[0].bank_label == "BANK 0"
        assert modules[0].capacity == "16 GB"
        assert modules[0].speed == "3200 MHz"
        assert modules[0].memory_type == "DDR4"
        assert modules[1].memory_type == "DDR3"

    def test_parse_dmidecode(self):
        """Test populated slots are reported and empty ones skipped."""
        modules = parsers.parse_dmidecode_memory(DMIDECODE)
        assert len(modules) == 2
        assert modules[0].bank_label == "BANK 0"
        assert modules[0].capacity == "16 GB"
        assert modules[0].speed == "3000 MHz"
        assert modules[0].memory_type == "DDR4"
        assert modules[1].bank_label == "DIMM_B1"
        assert modules[1].capacity == "8 GB"
        assert modules[1].speed == "2666 MHz"

    def test_parse_wmic_baseboard(self):
        """Test motherboard vendor and product."""
        board = parsers.parse_wmic_baseboard("Manufacturer=ASUSTeK COMPUTER INC.\r\nProduct=ROG STRIX B550-F\r\n")
        assert board.manufacturer == "ASUSTeK COMPUTER INC."
        assert board.product == "ROG STRIX B550-F"

    def test_parse_wmic_baseboard_missing(self):
        """Test missing fields default to Unknown."""
        board = parsers.parse_wmic_baseboard("")
        assert board.manufacturer == "Unknown"
        assert board.product == "Unknown"
