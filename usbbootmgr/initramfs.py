from __future__ import annotations

import logging
from pathlib import Path

from .command import run_command
from .exceptions import CommandError, InitramfsError, PresetError

MKINITCPIO_PROGRAM = "mkinitcpio"
MKINITCPIO_PRESETS_DIR = Path("/etc/mkinitcpio.d")

logger = logging.getLogger(__name__)


class MkinitcpioPreset:
    """An mkinitcpio preset that builds the USB boot initramfs images."""

    def __init__(self, name: str, presets_dir: Path = MKINITCPIO_PRESETS_DIR) -> None:
        self.name = name
        self.presets_dir = presets_dir

    @property
    def path(self) -> Path:
        return self.presets_dir / f"{self.name}.preset"

    def ensure_exists(self) -> None:
        if not self.path.is_file():
            raise PresetError(f'the mkinitcpio preset "{self.name}" does not exist ({self.path})')

    def generate(self) -> None:
        logger.debug(f"Regenerating initramfs images for preset {self.name}")
        try:
            run_command([MKINITCPIO_PROGRAM, "--preset", self.name])
        except CommandError as e:
            raise InitramfsError(f"failed to regenerate USB boot initramfs images: {e}") from e
