"""Best-effort launcher for an external tool."""

import logging
import os
import shutil
import subprocess
import sys

from hwdash.config import ExternalToolConfig
from hwdash.models import LaunchResult

logger = logging.getLogger(__name__)


def _spawn_detached(args: list[str], platform_name: str) -> None:
    kwargs: dict = {
        "stdin": subprocess.DEVNULL,
        "stdout": subprocess.DEVNULL,
        "stderr": subprocess.DEVNULL,
        "close_fds": True,
    }
    if platform_name == "win32":
        kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0
        )
    else:
        kwargs["start_new_session"] = True
    subprocess.Popen(args, **kwargs)


def launch_external_tool(
    tool: ExternalToolConfig | None = None,
    platform_name: str | None = None,
) -> LaunchResult:
    """
    Launch the configured tool without waiting for it.

    Candidate paths are probed in order and the first existing one is
    started detached. When none exists, the fallback command is tried
    (``start`` on Windows, a PATH lookup elsewhere). Never raises.
    """
    tool = tool or ExternalToolConfig()
    platform_name = platform_name or sys.platform
    launched = LaunchResult(success=True, message=f"{tool.name} launched successfully")

    for path in tool.paths:
        if not os.path.isfile(path):
            continue
        try:
            _spawn_detached([path], platform_name)
        except OSError as exc:
            logger.warning("Could not start %s from %s: %s", tool.name, path, exc)
            continue
        logger.info("Started %s from %s", tool.name, path)
        return launched

    command = tool.command or tool.name.lower()
    try:
        if platform_name == "win32":
            result = subprocess.run(
                f'start "" "{command}"',
                shell=True,
                capture_output=True,
                timeout=10,
                check=False,
            )
            if result.returncode == 0:
                return launched
        else:
            executable = shutil.which(command)
            if executable:
                _spawn_detached([executable], platform_name)
                return launched
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("Fallback launch of %s failed: %s", tool.name, exc)

    return LaunchResult(
        success=False,
        message=f"{tool.name} not found. Please install {tool.name}.",
    )
