"""
Deployment of the USB boot files.

The block device is mounted, the destination directory on it is emptied,
the contents of the local source directory are copied over (following
symlinks), and the device is unmounted again whatever happened in between.

Deleting happens before copying, so a copy failure leaves the destination
incomplete until the next successful run.
"""

from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path
from types import TracebackType

from . import output
from .command import run_command
from .config import DeployBootFilesConfig
from .exceptions import CommandError, CopyError, DeleteError, DestinationError, MountError, UnmountError
from .validation import validate_deploy_config

MOUNT_PROGRAM = "mount"
UNMOUNT_PROGRAM = "umount"

logger = logging.getLogger(__name__)


class RunState(Enum):
    NOT_MOUNTED = "not_mounted"
    MOUNTED = "mounted"


class BlockDeviceMount:
    """Keeps a block device mounted for the duration of a ``with`` block.

    The unmount is attempted at most once per successful mount. When the
    block exits with an error, a failing unmount is reported and the
    original error keeps propagating.
    """

    def __init__(self, block_device: Path, mount_point: Path) -> None:
        self.block_device = block_device
        self.mount_point = mount_point
        self.state = RunState.NOT_MOUNTED

    def mount(self) -> None:
        logger.debug(f"Mounting {self.block_device} at {self.mount_point}")
        try:
            run_command([MOUNT_PROGRAM, str(self.block_device), str(self.mount_point)])
        except CommandError as e:
            raise MountError(f"failed to mount {self.block_device} at {self.mount_point}: {e}") from e
        self.state = RunState.MOUNTED
        output.info(f"Mounted {self.block_device} at {self.mount_point}")

    def unmount(self) -> None:
        if self.state is not RunState.MOUNTED:
            return
        # The device is no longer ours to unmount, even if umount fails
        self.state = RunState.NOT_MOUNTED

        logger.debug(f"Unmounting {self.mount_point}")
        try:
            run_command([UNMOUNT_PROGRAM, str(self.mount_point)])
        except CommandError as e:
            raise UnmountError(f"failed to unmount {self.mount_point}: {e}") from e
        output.info(f"Unmounted {self.mount_point}")

    def __enter__(self) -> BlockDeviceMount:
        self.mount()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if exc_value is None:
            self.unmount()
            return
        try:
            self.unmount()
        except UnmountError as e:
            output.error(str(e))


def resolve_destination(config: DeployBootFilesConfig) -> Path:
    """Return the combined destination path, which only exists once mounted."""
    destination = config.destination_directory
    if not destination.exists():
        raise DestinationError(f"{destination} does not exist on {config.block_device}")
    if not destination.is_dir():
        raise DestinationError(f"{destination} is not a directory")
    return destination


def _entries(directory: Path) -> list[Path]:
    return sorted(directory.iterdir())


def clear_directory(directory: Path) -> None:
    """Remove everything directly inside ``directory``, keeping the directory itself."""
    try:
        entries = _entries(directory)
    except OSError as e:
        raise DeleteError(f"failed to list {directory}: {e.strerror or e}") from e

    for entry in entries:
        logger.debug(f"Removing {entry}")
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as e:
            raise DeleteError(f"failed to remove {entry}: {e.strerror or e}") from e


def _identity(path: Path) -> tuple[int, int]:
    st = path.stat()
    return st.st_dev, st.st_ino


def _copy_dereferenced(src: Path, dst: Path, ancestors: frozenset[tuple[int, int]]) -> None:
    # Only file contents are copied: boot media are usually FAT and reject
    # most ownership and mode changes
    if not src.is_dir():
        shutil.copyfile(src, dst)
        return

    identity = _identity(src)
    if identity in ancestors:
        raise CopyError(f"symlink loop: {src} leads back to one of its parent directories")

    dst.mkdir()
    for entry in _entries(src):
        _copy_dereferenced(entry, dst / entry.name, ancestors | {identity})


def copy_directory_contents(source: Path, destination: Path) -> None:
    """Copy everything directly inside ``source`` into ``destination``, following symlinks.

    A symlinked directory that leads back to one of its own parents is a
    ``CopyError``, as with ``cp -rL``.
    """
    try:
        entries = _entries(source)
        ancestors = frozenset({_identity(source)})
    except OSError as e:
        raise CopyError(f"failed to list {source}: {e.strerror or e}") from e

    for entry in entries:
        target = destination / entry.name
        logger.debug(f"Copying {entry} to {target}")
        try:
            _copy_dereferenced(entry, target, ancestors)
        except OSError as e:
            raise CopyError(f"failed to copy {entry} to {target}: {e.strerror or e}") from e


def sync_boot_files(config: DeployBootFilesConfig) -> None:
    """Replace the destination contents with the source contents. The device must be mounted."""
    destination = resolve_destination(config)

    output.info(f"Deleting old boot files in {destination}")
    clear_directory(destination)

    output.info(f"Copying boot files from {config.source_directory} to {destination}")
    copy_directory_contents(config.source_directory, destination)


def deploy_boot_files(config: DeployBootFilesConfig) -> None:
    """Validate, mount, sync and unmount, in that order.

    Raises:
        UsbBootError: the subclass identifies the step that failed. The
            device has been unmounted (or the attempt reported) by then.
    """
    validate_deploy_config(config)

    with BlockDeviceMount(config.block_device, config.mount_point):
        sync_boot_files(config)

    output.info("Boot files deployed")
