"""Run generator commands through the shell."""
import logging
import subprocess

from ..domains.errors import CommandError

logger = logging.getLogger(__name__)

SHELL = "bash"


def execute_command(command: str) -> bytes:
    """
    Run command with bash -c and return combined stdout and stderr.

    Raises:
        CommandError: If the shell cannot be started (including a command
            line with a NUL byte) or exits non-zero
    """
    logger.debug(f"Running: {command}")
    try:
        result = subprocess.run(
            [SHELL, "-c", command],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False
        )
    except (OSError, ValueError) as e:
        # ValueError: the command line holds a NUL byte
        raise CommandError(command, str(e)) from e

    if result.returncode != 0:
        output = result.stdout.decode("UTF-8", errors="replace")
        raise CommandError(command, output, result.returncode)
    return result.stdout
