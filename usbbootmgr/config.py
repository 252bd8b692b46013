"""
Configuration file handling.

The whole tool is configured by one TOML file. Kernel switching settings
live at the top level (plus a ``[default_options]`` table), boot file
deployment settings live in the ``[deploy_boot_files]`` table. Each
command only validates the part of the file it needs.
"""

from __future__ import annotations

import logging
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ConfigError

DEFAULT_CONFIG_FILE = Path("/etc/usb-boot/usbbootmgr.toml")
DEPLOY_TABLE = "deploy_boot_files"

logger = logging.getLogger(__name__)


class CompareKernels(Enum):
    FALSE = "false"
    FULL = "full"
    EFFICIENT = "efficient"


def _reject_empty(v: Any) -> Any:
    if v is None or (isinstance(v, str) and not v.strip()):
        raise ValueError("must not be empty")
    return v


# noinspection PyMethodParameters
class DeployBootFilesConfig(BaseModel):
    """Where the boot files come from and where on the USB device they go."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    block_device: Path
    mount_point: Path
    source_directory: Path
    destination_subpath: Path

    @field_validator("*", mode="before")
    @classmethod
    def _validate_not_empty(cls, v: Any) -> Any:
        return _reject_empty(v)

    @field_validator("destination_subpath")
    @classmethod
    def _validate_destination_subpath(cls, v: Path) -> Path:
        # Always relative to the mount point, "/boot" means <mount_point>/boot
        if v.is_absolute():
            v = v.relative_to(v.anchor)
        if ".." in v.parts:
            raise ValueError(f"{v} must stay below the mount point")
        return v

    @property
    def destination_directory(self) -> Path:
        """The combined destination path on the mounted filesystem."""
        return self.mount_point / self.destination_subpath


class DefaultOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hard_link: bool = False
    compare_kernels: CompareKernels = CompareKernels.FALSE

    @field_validator("compare_kernels", mode="before")
    @classmethod
    def _validate_compare_kernels(cls, v: Any) -> Any:
        # TOML users tend to write `compare_kernels = false`
        if v is False:
            return CompareKernels.FALSE
        return v


# noinspection PyMethodParameters
class KernelConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    boot_kernel: Path
    upstream_kernel: Path | None = None
    mkinitcpio_preset: str
    default_options: DefaultOptions = Field(default_factory=DefaultOptions)

    @field_validator("boot_kernel", "mkinitcpio_preset", mode="before")
    @classmethod
    def _validate_not_empty(cls, v: Any) -> Any:
        return _reject_empty(v)

    @field_validator("upstream_kernel", mode="before")
    @classmethod
    def _validate_upstream_kernel(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("mkinitcpio_preset")
    @classmethod
    def _validate_preset_name(cls, v: str) -> str:
        if "/" in v:
            raise ValueError("must be a preset name, not a path")
        return v.removesuffix(".preset")


def read_config_file(path: Path) -> dict[str, Any]:
    """Read and parse the TOML file at ``path``.

    Raises:
        ConfigError: the file cannot be read or is not valid TOML
    """
    logger.debug(f"Reading configuration from {path}")
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e.strerror or e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"syntax error in {path}: {e}") from e


def _describe(exc: pydantic.ValidationError, prefix: str = "") -> str:
    problems = []
    for err in exc.errors():
        key = ".".join(str(part) for part in err["loc"])
        if prefix:
            key = f"{prefix}.{key}" if key else prefix
        problems.append(f"{key}: {err['msg']}")
    return "; ".join(problems)


def load_deploy_config(path: Path | None = None) -> DeployBootFilesConfig:
    """Load the ``[deploy_boot_files]`` table of the config file."""
    path = path or DEFAULT_CONFIG_FILE
    data = read_config_file(path)

    section = data.get(DEPLOY_TABLE)
    if section is None:
        raise ConfigError(f"{path} has no [{DEPLOY_TABLE}] table")
    if not isinstance(section, dict):
        raise ConfigError(f"{DEPLOY_TABLE} in {path} must be a table")

    try:
        config = DeployBootFilesConfig.model_validate(section)
    except pydantic.ValidationError as e:
        raise ConfigError(f"invalid {path}: {_describe(e, DEPLOY_TABLE)}") from e

    logger.debug(f"Deploy configuration: {config}")
    return config


def load_kernel_config(path: Path | None = None) -> KernelConfig:
    """Load the kernel switching settings (everything outside ``[deploy_boot_files]``)."""
    path = path or DEFAULT_CONFIG_FILE
    data = read_config_file(path)
    data.pop(DEPLOY_TABLE, None)

    try:
        config = KernelConfig.model_validate(data)
    except pydantic.ValidationError as e:
        raise ConfigError(f"invalid {path}: {_describe(e)}") from e

    logger.debug(f"Kernel configuration: {config}")
    return config
