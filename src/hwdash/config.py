"""
Configuration management for hwdash.

Loads configuration from an optional YAML file and environment variables.
"""

import logging
import os
import sys
from dataclasses import asdict, dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path

import yaml

MALWAREBYTES_PATHS = [
    "C:\\Program Files\\Malwarebytes\\Anti-Malware\\mbam.exe",
    "C:\\Program Files (x86)\\Malwarebytes\\Anti-Malware\\mbam.exe",
    "C:\\Program Files\\Malwarebytes\\Malwarebytes Anti-Malware\\mbam.exe",
    "C:\\Program Files (x86)\\Malwarebytes\\Malwarebytes Anti-Malware\\mbam.exe",
]


def default_volume() -> str:
    """Primary volume of the current platform."""
    return "C:" if sys.platform == "win32" else "/"


@dataclass
class PollingConfig:
    """Poll scheduling and in-memory retention."""

    interval_seconds: float = 2.0
    cache_ttl_ms: int = 5000  # GPU and network lookups
    history_size: int = 60


@dataclass
class CommandTimeouts:
    """Timeouts (seconds) for shell-backed queries."""

    hardware: float = 5.0
    gpu: float = 3.0
    disk: float = 3.0
    network: float = 2.0


@dataclass
class StorageConfig:
    """Volume reported in the storage card."""

    volume: str = field(default_factory=default_volume)


@dataclass
class ExternalToolConfig:
    """External tool started from the dashboard."""

    name: str = "Malwarebytes"
    paths: list[str] = field(default_factory=lambda: list(MALWAREBYTES_PATHS))
    command: str | None = None  # fallback; defaults to the lowercased name


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: str | None = None
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class DashboardConfig:
    """Main configuration container."""

    polling: PollingConfig = field(default_factory=PollingConfig)
    timeouts: CommandTimeouts = field(default_factory=CommandTimeouts)
    storage: StorageConfig = field(default_factory=StorageConfig)
    external_tool: ExternalToolConfig = field(default_factory=ExternalToolConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "DashboardConfig":
        """Load configuration from a YAML file; a missing file yields defaults."""
        config_path = Path(path)
        data: dict = {}
        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "DashboardConfig":
        """Create config from a dictionary, then apply environment overrides."""
        config = cls()

        if "polling" in data:
            config.polling = PollingConfig(**data["polling"])
        if "timeouts" in data:
            config.timeouts = CommandTimeouts(**data["timeouts"])
        if "storage" in data:
            config.storage = StorageConfig(**data["storage"])
        if "external_tool" in data:
            config.external_tool = ExternalToolConfig(**data["external_tool"])
        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        config._apply_env_overrides()
        return config

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        if os.getenv("HWDASH_INTERVAL"):
            self.polling.interval_seconds = float(os.getenv("HWDASH_INTERVAL"))
        if os.getenv("HWDASH_CACHE_TTL_MS"):
            self.polling.cache_ttl_ms = int(os.getenv("HWDASH_CACHE_TTL_MS"))
        if os.getenv("HWDASH_HISTORY_SIZE"):
            self.polling.history_size = int(os.getenv("HWDASH_HISTORY_SIZE"))

        if os.getenv("HWDASH_VOLUME"):
            self.storage.volume = os.getenv("HWDASH_VOLUME")

        if os.getenv("HWDASH_TOOL_PATH"):
            # Probed before the configured defaults
            self.external_tool.paths.insert(0, os.getenv("HWDASH_TOOL_PATH"))

        if os.getenv("HWDASH_LOG_LEVEL"):
            self.logging.level = os.getenv("HWDASH_LOG_LEVEL")
        if os.getenv("HWDASH_LOG_FILE"):
            self.logging.file_path = os.getenv("HWDASH_LOG_FILE")

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(asdict(self), f, default_flow_style=False)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    candidates = [
        Path("hwdash.yaml"),
        Path.home() / ".config" / "hwdash" / "config.yaml",
    ]

    for path in candidates:
        if path.exists():
            return str(path)

    return str(candidates[0])


def configure_logging(config: LoggingConfig, handler: logging.Handler | None = None) -> None:
    """
    Configure root logging.

    The terminal belongs to the UI, so records go to ``handler`` (the app
    passes Textual's devtools handler) and to an optional rotating file.
    """
    handlers: list[logging.Handler] = []
    if handler is not None:
        handlers.append(handler)
    if config.file_path:
        handlers.append(
            RotatingFileHandler(
                config.file_path,
                maxBytes=config.max_file_size_mb * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )
    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, config.level.upper(), logging.INFO),
        format=config.format,
        handlers=handlers,
        force=True,
    )
