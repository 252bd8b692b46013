from __future__ import annotations

import logging
from pathlib import Path

from .config import DeployBootFilesConfig
from .exceptions import ValidationError

logger = logging.getLogger(__name__)


def check_block_device(path: Path) -> None:
    if not path.exists():
        raise ValidationError("block_device", f"block device {path} does not exist (is the USB device plugged in?)")
    if not path.is_block_device():
        raise ValidationError("block_device", f"{path} is not a block special file")


def check_directory(check: str, path: Path) -> None:
    if not path.exists():
        raise ValidationError(check, f"{check.replace('_', ' ')} {path} does not exist")
    if not path.is_dir():
        raise ValidationError(check, f"{check.replace('_', ' ')} {path} is not a directory")


def validate_deploy_config(config: DeployBootFilesConfig) -> None:
    """Check every precondition that can be checked before mounting.

    Nothing is mounted, deleted or copied here, so a failure leaves the
    system untouched.

    Raises:
        ValidationError: with ``check`` set to the name of the offending setting
    """
    logger.debug("Validating deploy preconditions")
    check_block_device(config.block_device)
    check_directory("mount_point", config.mount_point)
    check_directory("source_directory", config.source_directory)
    logger.debug("Deploy preconditions satisfied")
