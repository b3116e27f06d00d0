"""hwdash - Main Textual application."""

import argparse
import json
import logging
import time
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Grid, Vertical
from textual.css.query import NoMatches
from textual.logging import TextualHandler
from textual.widgets import Footer, Header, Sparkline, Static

from hwdash.config import DashboardConfig, configure_logging, get_default_config_path
from hwdash.launcher import launch_external_tool
from hwdash.models import HardwareSnapshot, LaunchResult, PollFailure
from hwdash.monitor import PollResult, SnapshotAssembler, SystemMonitor
from hwdash.telemetry import SystemTelemetry

logger = logging.getLogger(__name__)

BAR_WIDTH = 20
ERROR_TEXT = "Error"


def usage_level(percent: float) -> str:
    """Status label for a usage percentage."""
    if percent > 80:
        return "High Usage"
    if percent > 60:
        return "Moderate"
    return "Optimal"


def level_color(percent: float, normal: str = "green") -> str:
    """Bar colour for a usage percentage."""
    if percent > 80:
        return "red"
    if percent > 60:
        return "yellow"
    return normal


def signal_color(signal: int) -> str:
    """Bar colour for a Wi-Fi signal percentage."""
    if signal > 70:
        return "green"
    if signal > 50:
        return "yellow"
    return "red"


def render_bar(percent: float, color: str, width: int = BAR_WIDTH) -> str:
    """Render a percentage as a markup bar."""
    filled = min(width, max(0, int(percent / 100 * width)))
    # Escaped bracket keeps the bar container out of markup parsing
    return f"\\[[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]]"


class DashboardCard(Vertical):
    """Bordered card made of named text fields."""

    DEFAULT_CSS = """
    DashboardCard {
        height: auto;
        border: round $primary;
        padding: 0 1;
    }

    DashboardCard Sparkline {
        height: 3;
        margin-top: 1;
    }
    """

    FIELDS: tuple[str, ...] = ()

    def __init__(self, title: str, *args, **kwargs) -> None:
        """Initialize the card."""
        super().__init__(*args, **kwargs)
        self.border_title = title
        self.fields: dict[str, str] = {field_id: "" for field_id in self.FIELDS}

    def compose(self) -> ComposeResult:
        """Compose one Static per field."""
        for field_id in self.FIELDS:
            yield Static(self.fields[field_id] or "Loading...", id=field_id)

    def set_field(self, field_id: str, text: str) -> None:
        """Record and display a field value."""
        self.fields[field_id] = text
        try:
            self.query_one(f"#{field_id}", Static).update(text)
        except NoMatches:
            pass  # Widget not mounted yet

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        """Refresh the fields from a snapshot. Cards override this."""


class CpuCard(DashboardCard):
    """CPU model, usage gauge, estimated temperature and history."""

    FIELDS = ("cpu-model", "cpu-cores", "cpu-speed", "cpu-usage", "cpu-bar", "cpu-temp")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("CPU", *args, **kwargs)
        self.history: list[float] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Sparkline([], summary_function=max, id="cpu-history")

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        usage = snapshot.cpu_usage
        self.set_field("cpu-model", snapshot.cpu_model)
        self.set_field("cpu-cores", f"Cores: {snapshot.cpu_cores}")
        self.set_field("cpu-speed", snapshot.cpu_speed)
        self.set_field("cpu-usage", f"{usage:.0f}%")
        self.set_field("cpu-bar", render_bar(usage, level_color(usage, "blue")))
        self.set_field("cpu-temp", f"{snapshot.cpu_temperature}° (estimated)")
        self.history = list(snapshot.history.cpu)
        try:
            self.query_one("#cpu-history", Sparkline).data = self.history
        except NoMatches:
            pass


class GpuCard(DashboardCard):
    """GPU name with simulated usage and temperature."""

    FIELDS = ("gpu-model", "gpu-usage", "gpu-bar", "gpu-temp", "gpu-status")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("GPU", *args, **kwargs)

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        name = snapshot.gpu_name
        if snapshot.gpu_memory != "Unknown":
            name = f"{name} ({snapshot.gpu_memory})"
        self.set_field("gpu-model", name)
        self.set_field("gpu-usage", f"{snapshot.gpu_usage}% (simulated)")
        self.set_field("gpu-bar", render_bar(snapshot.gpu_usage, level_color(snapshot.gpu_usage, "blue")))
        self.set_field("gpu-temp", f"{snapshot.gpu_temperature}° (simulated)")
        self.set_field("gpu-status", usage_level(snapshot.gpu_usage))


class MemoryCard(DashboardCard):
    """Memory usage gauge, details and history."""

    FIELDS = ("ram-specs", "memory-usage", "memory-bar", "memory-details", "memory-status")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("Memory", *args, **kwargs)
        self.history: list[float] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Sparkline([], summary_function=max, id="memory-history")

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        usage = snapshot.memory_usage
        self.set_field("ram-specs", f"{snapshot.memory_total_gb:.1f} GB Total")
        self.set_field("memory-usage", f"{usage:.0f}%")
        self.set_field("memory-bar", render_bar(usage, level_color(usage)))
        self.set_field(
            "memory-details",
            f"{snapshot.memory_used_gb:.1f} GB used of {snapshot.memory_total_gb:.1f} GB "
            f"({snapshot.memory_free_gb:.1f} GB free)",
        )
        self.set_field("memory-status", usage_level(usage))
        self.history = list(snapshot.history.memory)
        try:
            self.query_one("#memory-history", Sparkline).data = self.history
        except NoMatches:
            pass


class StorageCard(DashboardCard):
    """Primary volume usage."""

    FIELDS = ("storage-usage", "storage-bar", "storage-details", "storage-status")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("Storage", *args, **kwargs)

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        usage = snapshot.storage_usage
        self.set_field("storage-usage", f"{usage:.0f}%")
        self.set_field("storage-bar", render_bar(usage, level_color(usage, "magenta")))
        if snapshot.storage_total_gb:
            details = (
                f"{snapshot.storage_used_gb:.1f} GB used of {snapshot.storage_total_gb:.1f} GB "
                f"({snapshot.storage_free_gb:.1f} GB free)"
            )
        else:
            details = f"{usage:.0f}% of drive capacity used"
        self.set_field("storage-details", details)
        self.set_field("storage-status", usage_level(usage))


class NetworkCard(DashboardCard):
    """Connection, signal strength and simulated throughput."""

    FIELDS = ("network-name", "network-status", "signal-strength", "signal-bar", "network-speed", "network-type")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("Network", *args, **kwargs)

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        self.set_field("network-name", snapshot.network_ssid)
        if snapshot.network_connected:
            self.set_field("network-status", "[green]● Connected[/green]")
        else:
            self.set_field("network-status", "[red]● Disconnected[/red]")
        signal = snapshot.network_signal
        self.set_field("signal-strength", f"Signal: {signal}%")
        self.set_field("signal-bar", render_bar(signal, signal_color(signal)))
        self.set_field(
            "network-speed",
            f"↓ {snapshot.download_speed} MB/s  ↑ {snapshot.upload_speed} MB/s (simulated)",
        )
        self.set_field("network-type", f"Type: {snapshot.network_type}")


class HostCard(DashboardCard):
    """Hostname, OS and uptime."""

    FIELDS = ("hostname", "system-info", "os-release", "uptime", "load-average")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("Host", *args, **kwargs)

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        load = snapshot.load_average
        self.set_field("hostname", snapshot.hostname)
        self.set_field("system-info", f"{snapshot.os_type} {snapshot.architecture}")
        self.set_field("os-release", f"{snapshot.platform} {snapshot.os_release}")
        self.set_field("uptime", f"Uptime: {snapshot.uptime}")
        self.set_field("load-average", f"Load average: {load[0]:.2f} {load[1]:.2f} {load[2]:.2f}")


class HardwareCard(DashboardCard):
    """Detailed CPU, memory module and motherboard inventory."""

    FIELDS = ("hw-cpu", "hw-memory", "hw-motherboard")

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("Hardware", *args, **kwargs)

    def update_snapshot(self, snapshot: HardwareSnapshot) -> None:
        hardware = snapshot.detailed_hardware
        cpu = hardware.cpu
        self.set_field(
            "hw-cpu",
            f"{cpu.name} ({cpu.manufacturer}, {cpu.architecture})\n"
            f"{cpu.cores} cores / {cpu.logical_processors} threads @ {cpu.max_clock_speed}\n"
            f"L2 {cpu.l2_cache}  L3 {cpu.l3_cache}",
        )
        if hardware.memory:
            modules = "\n".join(
                f"{module.bank_label}: {module.capacity} {module.memory_type} @ {module.speed}"
                for module in hardware.memory
            )
        else:
            modules = "Memory modules: Unknown"
        self.set_field("hw-memory", modules)
        board = hardware.motherboard
        self.set_field("hw-motherboard", f"Board: {board.manufacturer} {board.product}")


class DashboardApp(App):
    """Main hwdash application."""

    TITLE = "hwdash"

    CSS = """
    Screen {
        layout: vertical;
    }

    #cards {
        grid-size: 3;
        grid-gutter: 0 1;
        height: auto;
    }

    #tool-status {
        height: 1;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("space", "toggle_refresh", "Auto-refresh"),
        ("l", "launch_tool", "Launch tool"),
    ]

    def __init__(
        self,
        config: DashboardConfig | None = None,
        assembler: SnapshotAssembler | None = None,
    ) -> None:
        """Initialize the DashboardApp."""
        super().__init__()
        self._config = config or DashboardConfig()
        self._update_queue: Queue[PollResult] = Queue()
        if assembler is None:
            assembler = SnapshotAssembler(SystemTelemetry(self._config.timeouts), self._config)
        self._monitor = SystemMonitor(
            self._update_queue,
            assembler,
            poll_rate=self._config.polling.interval_seconds,
        )
        self.last_snapshot: HardwareSnapshot | None = None
        self.last_failure: PollFailure | None = None
        self.tool_status = "Ready to launch"
        self.sub_title = self._refresh_label()

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header()
        yield Grid(
            CpuCard(id="cpu-card"),
            GpuCard(id="gpu-card"),
            MemoryCard(id="memory-card"),
            StorageCard(id="storage-card"),
            NetworkCard(id="network-card"),
            HostCard(id="host-card"),
            id="cards",
        )
        yield HardwareCard(id="hardware-card")
        yield Static("Ready to launch", id="tool-status")
        yield Footer()

    def on_mount(self) -> None:
        """Start the system monitor when the app is mounted."""
        self._monitor.start()
        # Set up a timer to poll the queue for updates
        self.set_interval(0.5, self._check_for_updates)

    def _refresh_label(self) -> str:
        if self._monitor.is_paused:
            return "Paused"
        return f"Every {self._monitor.poll_rate:g} seconds"

    def _check_for_updates(self) -> None:
        """Check the queue for poll results and refresh the UI."""
        # Drain the queue and keep only the most recent result
        result = None
        while True:
            try:
                result = self._update_queue.get_nowait()
            except Empty:
                break

        if result is None:
            return
        try:
            if isinstance(result, PollFailure):
                self._show_failure(result)
            else:
                self._update_ui(result)
        except Exception:
            # A rendering fault must not stop the refresh timer
            logger.exception("Failed to apply poll result")

    def _update_ui(self, snapshot: HardwareSnapshot) -> None:
        """Update every card from a snapshot."""
        self.last_snapshot = snapshot
        self.last_failure = None
        for card in self.query(DashboardCard):
            try:
                card.update_snapshot(snapshot)
            except Exception:
                logger.exception("Failed to update %s", card.id)

    def _show_failure(self, failure: PollFailure) -> None:
        """Mark the headline fields as errored; everything else keeps its last value."""
        self.last_failure = failure
        try:
            cpu = self.query_one(CpuCard)
            memory = self.query_one(MemoryCard)
            host = self.query_one(HostCard)
        except NoMatches:
            return
        cpu.set_field("cpu-usage", ERROR_TEXT)
        memory.set_field("memory-usage", ERROR_TEXT)
        memory.set_field("memory-details", "Error loading memory data")
        host.set_field("hostname", "Error loading hostname")

    def action_refresh(self) -> None:
        """Poll immediately."""
        self._monitor.request_refresh()

    def action_toggle_refresh(self) -> None:
        """Pause or resume automatic polling."""
        paused = self._monitor.toggle_pause()
        self.sub_title = self._refresh_label()
        self.notify("Auto-refresh paused" if paused else "Auto-refresh resumed")

    def action_launch_tool(self) -> None:
        """Launch the configured external tool in a worker thread."""
        self._set_tool_status(f"Starting {self._config.external_tool.name}...")
        self.run_worker(self._launch_tool, thread=True, exclusive=True, group="launcher")

    def _launch_tool(self) -> None:
        result = launch_external_tool(self._config.external_tool)
        self.call_from_thread(self._show_launch_result, result)

    def _show_launch_result(self, result: LaunchResult) -> None:
        if result.success:
            self._set_tool_status(f"[green]{result.message}[/green]")
            self.set_timer(3, self._reset_tool_status)
        else:
            self._set_tool_status(f"[red]{result.message}[/red]")
            self.set_timer(5, self._reset_tool_status)

    def _reset_tool_status(self) -> None:
        self._set_tool_status("Ready to launch")

    def _set_tool_status(self, text: str) -> None:
        self.tool_status = text
        try:
            self.query_one("#tool-status", Static).update(text)
        except NoMatches:
            pass

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def build_parser() -> argparse.ArgumentParser:
    """Command line interface."""
    parser = argparse.ArgumentParser(prog="hwdash", description="Terminal hardware dashboard")
    parser.add_argument("--config", default=None, help="Path to a YAML configuration file")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between polls")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Print one snapshot as JSON and exit instead of starting the UI",
    )
    return parser


def load_config(args: argparse.Namespace) -> DashboardConfig:
    """Build the configuration from file, environment and arguments."""
    config = DashboardConfig.from_yaml(args.config or get_default_config_path())
    if args.interval is not None:
        config.polling.interval_seconds = args.interval
    if args.log_level:
        config.logging.level = args.log_level
    return config


def print_snapshot(config: DashboardConfig) -> None:
    """Poll twice, one interval apart, so CPU usage has a baseline."""
    assembler = SnapshotAssembler(SystemTelemetry(config.timeouts), config)
    assembler.poll()
    time.sleep(min(config.polling.interval_seconds, 1.0))
    snapshot = assembler.poll()
    print(json.dumps(snapshot.to_dict(), indent=2))


def main(argv: list[str] | None = None) -> None:
    """Entry point for the hwdash application."""
    args = build_parser().parse_args(argv)
    config = load_config(args)

    if args.once:
        configure_logging(config.logging, logging.StreamHandler())
        print_snapshot(config)
        return

    configure_logging(config.logging, TextualHandler())
    app = DashboardApp(config)
    app.run()


if __name__ == "__main__":
    main()
