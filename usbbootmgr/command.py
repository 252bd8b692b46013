"""
Running the external programs usbbootmgr depends on.

mount, umount, file and mkinitcpio are run without a shell, their output is
captured, and every way of failing (missing binary, non-zero exit status)
comes back as a single ``CommandError`` for the caller to wrap into the
error of its own step.
"""

from __future__ import annotations

import logging
import subprocess

from .exceptions import CommandError

logger = logging.getLogger(__name__)


def run_command(cmd: list[str]) -> str:
    """Run ``cmd`` and return its standard output.

    Args:
        cmd: Program and arguments

    Returns:
        Captured stdout as text

    Raises:
        CommandError: the program could not be started or exited non-zero
    """
    cmd_str = " ".join(cmd)
    logger.debug(f"Executing: {cmd_str}")

    try:
        result = subprocess.run(cmd, check=True, text=True, capture_output=True)
    except FileNotFoundError as e:
        raise CommandError(f"{cmd[0]} not found (is it installed?)") from e
    except subprocess.CalledProcessError as e:
        logger.debug(f"Command failed: {cmd_str}, return code {e.returncode}, stderr: {e.stderr}")
        details = (e.stderr or e.stdout or "").strip()
        message = f"{cmd[0]} exited with status {e.returncode}"
        raise CommandError(f"{message}: {details}" if details else message, exit_code=e.returncode) from e
    except OSError as e:
        raise CommandError(f"cannot run {cmd[0]}: {e.strerror or e}") from e

    return result.stdout
