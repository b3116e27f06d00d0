"""Shell command execution with explicit timeouts."""

import logging
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """A shell command timed out, was missing, or exited non-zero."""

    def __init__(self, command: Sequence[str], reason: str) -> None:
        self.command = list(command)
        self.reason = reason
        super().__init__(f"{' '.join(self.command)}: {reason}")


def run_command(command: Sequence[str], timeout: float) -> str:
    """
    Run a command and return its standard output.

    Args:
        command: Program and arguments. Never passed through a shell.
        timeout: Seconds before the command is killed.

    Raises:
        CommandError: On timeout, missing executable, or non-zero exit.
    """
    try:
        result = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandError(command, f"timed out after {timeout:g}s") from exc
    except OSError as exc:
        # Executable not found or not runnable on this platform
        raise CommandError(command, str(exc)) from exc

    if result.returncode != 0:
        stderr = (result.stderr or "").strip().splitlines()
        reason = f"exit status {result.returncode}"
        if stderr:
            reason = f"{reason}: {stderr[0]}"
        raise CommandError(command, reason)

    logger.debug("Command %s returned %d bytes", command[0], len(result.stdout))
    return result.stdout
