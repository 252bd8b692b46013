"""
Switching the kernel booted through the USB boot initramfs.

The kernel image referenced by the USB boot mkinitcpio preset is replaced
with another kernel image (copied or hard linked), then the preset is
regenerated. When kernel comparison is enabled and the new kernel has the
same contents as the current one, regeneration is skipped.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from . import output
from .command import run_command
from .config import CompareKernels
from .exceptions import CommandError, KernelImageError, KernelInstallError
from .initramfs import MKINITCPIO_PRESETS_DIR, MkinitcpioPreset

FILE_UTILITY = "file"
KERNEL_IMAGE_MARKERS = ("kernel", "executable")
COMPARE_CHUNK_SIZE = 1024 * 1024

logger = logging.getLogger(__name__)


@dataclass
class KernelChange:
    source: Path
    destination: Path
    hard_link: bool
    mkinitcpio_preset: str
    compare_kernels: CompareKernels = CompareKernels.FALSE


def is_kernel_image(path: Path) -> bool:
    """Ask file(1) whether ``path`` looks like a kernel image"""
    try:
        description = run_command([FILE_UTILITY, "--brief", str(path)])
    except CommandError as e:
        raise KernelImageError(f'failed to inspect "{path}" with {FILE_UTILITY}: {e}') from e
    logger.debug(f"{FILE_UTILITY} reports {path}: {description.strip()}")
    return all(marker in description for marker in KERNEL_IMAGE_MARKERS)


def check_kernel_image(path: Path) -> None:
    if not path.is_file() or not is_kernel_image(path):
        raise KernelImageError(f'the file "{path}" is not accessible or is not a kernel image')


def file_contents_are_identical(left: Path, right: Path, efficient: bool = False) -> bool:
    """Compare two files byte by byte.

    Args:
        left: First file
        right: Second file
        efficient: Report a difference straight away when the sizes differ

    Returns:
        True when both files hold the same bytes
    """
    if efficient:
        # Unknown sizes just mean a full comparison
        with contextlib.suppress(OSError):
            if left.stat().st_size != right.stat().st_size:
                return False

    with left.open("rb") as left_file, right.open("rb") as right_file:
        while True:
            left_chunk = left_file.read(COMPARE_CHUNK_SIZE)
            right_chunk = right_file.read(COMPARE_CHUNK_SIZE)
            if left_chunk != right_chunk:
                return False
            if not left_chunk:
                return True


def kernel_needs_initramfs(change: KernelChange) -> bool:
    if change.compare_kernels is CompareKernels.FALSE or not change.destination.exists():
        return True

    efficient = change.compare_kernels is CompareKernels.EFFICIENT
    try:
        identical = file_contents_are_identical(change.source, change.destination, efficient)
    except OSError as e:
        raise KernelInstallError(f"failed to compare {change.source} with {change.destination}: {e.strerror or e}") from e
    return not identical


def install_kernel(source: Path, destination: Path, hard_link: bool) -> None:
    if source.resolve() == destination.resolve():
        raise KernelInstallError(f"{source} is already the boot kernel")

    try:
        destination.unlink(missing_ok=True)
    except OSError as e:
        raise KernelInstallError(f"failed to unlink destination file {destination}: {e.strerror or e}") from e

    try:
        if hard_link:
            logger.debug(f"Hard linking {destination} to {source}")
            destination.hardlink_to(source)
        else:
            logger.debug(f"Copying {source} to {destination}")
            shutil.copy(source, destination)
    except OSError as e:
        action = "hard link" if hard_link else "copy"
        raise KernelInstallError(f"failed to {action} {source} to {destination}: {e.strerror or e}") from e


def change_kernel(change: KernelChange, presets_dir: Path = MKINITCPIO_PRESETS_DIR) -> None:
    check_kernel_image(change.source)

    preset = MkinitcpioPreset(change.mkinitcpio_preset, presets_dir)
    preset.ensure_exists()

    regenerate = kernel_needs_initramfs(change)

    install_kernel(change.source, change.destination, change.hard_link)
    output.info(f"Installed {change.source} as {change.destination}")

    if not regenerate:
        output.info(f"Kernel unchanged, not regenerating the {preset.name} initramfs")
        return

    output.info(f"Regenerating initramfs for preset {preset.name}")
    preset.generate()
    output.info("USB boot initramfs regenerated")
