from __future__ import annotations

import logging
import sys

from . import output
from .cli import CliOptions, Command, parse_args, parse_update_usb_boot_args
from .config import KernelConfig, load_deploy_config, load_kernel_config
from .deploy import deploy_boot_files
from .exceptions import ConfigError, UsbBootError
from .kernel import KernelChange, change_kernel

logger = logging.getLogger(__name__)


def build_kernel_change(options: CliOptions, config: KernelConfig) -> KernelChange:
    """Merge command line flags with the configured defaults."""
    if options.command is Command.CHANGE_KERNEL:
        assert options.kernel_file is not None
        source = options.kernel_file
    elif config.upstream_kernel is None:
        raise ConfigError(f"update-kernel needs upstream_kernel to be set in {options.config}")
    else:
        source = config.upstream_kernel

    hard_link = options.hard_link if options.hard_link is not None else config.default_options.hard_link
    compare_kernels = options.compare_kernels or config.default_options.compare_kernels

    return KernelChange(
        source=source,
        destination=config.boot_kernel,
        hard_link=hard_link,
        mkinitcpio_preset=config.mkinitcpio_preset,
        compare_kernels=compare_kernels,
    )


def run(options: CliOptions) -> None:
    logger.debug(f"Running {options.command.value} with {options.config}")
    if options.command is Command.DEPLOY_BOOT_FILES:
        deploy_boot_files(load_deploy_config(options.config))
    else:
        change_kernel(build_kernel_change(options, load_kernel_config(options.config)))


def execute(options: CliOptions) -> int:
    output.setup_logging(options.debug)
    try:
        run(options)
    except UsbBootError as e:
        output.error(str(e))
        logger.debug(f"Full error details: {e!r}")
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    return execute(parse_args(sys.argv[1:] if argv is None else argv))


def update_usb_boot(argv: list[str] | None = None) -> int:
    return execute(parse_update_usb_boot_args(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    raise SystemExit(main())
