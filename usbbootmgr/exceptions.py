from __future__ import annotations


class UsbBootError(Exception):
    """Base class for every failure that aborts a usbbootmgr run."""

    step = "usbbootmgr"

    def __str__(self) -> str:
        return f"{self.step}: {super().__str__()}"


class ConfigError(UsbBootError):
    """Config file unreadable, unparsable or missing required values"""

    step = "config"


class ValidationError(UsbBootError):
    """A precondition on the configured paths does not hold"""

    step = "validate"

    def __init__(self, check: str, message: str) -> None:
        super().__init__(message)
        self.check = check


class MountError(UsbBootError):
    step = "mount"


class DestinationError(UsbBootError):
    step = "destination"


class DeleteError(UsbBootError):
    step = "delete"


class CopyError(UsbBootError):
    step = "copy"


class UnmountError(UsbBootError):
    step = "unmount"


class KernelImageError(UsbBootError):
    """The file is not accessible or is not a kernel image"""

    step = "kernel-image"


class PresetError(UsbBootError):
    step = "preset"


class KernelInstallError(UsbBootError):
    step = "install-kernel"


class InitramfsError(UsbBootError):
    step = "initramfs"


class CommandError(Exception):
    """An external program could not be run or exited with a non-zero status

    Never reported on its own: each step wraps it into its own error.
    """

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code
