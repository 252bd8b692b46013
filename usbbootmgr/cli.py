from __future__ import annotations

import argparse
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import DEFAULT_CONFIG_FILE, CompareKernels


class Command(Enum):
    DEPLOY_BOOT_FILES = "deploy-boot-files"
    CHANGE_KERNEL = "change-kernel"
    UPDATE_KERNEL = "update-kernel"


@dataclass
class CliOptions:
    command: Command
    config: Path = DEFAULT_CONFIG_FILE
    kernel_file: Path | None = None
    hard_link: bool | None = None  # None -> config default
    compare_kernels: CompareKernels | None = None  # None -> config default
    debug: bool = False


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help=f"Configuration file to use (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--debug", action="store_true", help="Log every step and external command to stderr")


def _add_kernel_options(parser: argparse.ArgumentParser) -> None:
    link_group = parser.add_mutually_exclusive_group()
    link_group.add_argument(
        "--hard-link",
        dest="hard_link",
        action="store_const",
        const=True,
        help="Hard link the kernel instead of copying it",
    )
    link_group.add_argument(
        "--no-hard-link",
        dest="hard_link",
        action="store_const",
        const=False,
        help="Copy the kernel instead of hard linking it",
    )
    parser.add_argument(
        "--compare-kernels",
        choices=[mode.value for mode in CompareKernels],
        help="Skip initramfs regeneration when the kernel is unchanged: false, full or efficient (size check first)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="usbbootmgr", description="Manage the USB boot medium of an encrypted root system")
    _add_common_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    subparsers.add_parser(
        Command.DEPLOY_BOOT_FILES.value,
        help="Replace the boot files on the USB device with the local ones",
    )

    change = subparsers.add_parser(
        Command.CHANGE_KERNEL.value,
        help="Boot the given kernel image through the USB boot initramfs",
    )
    _add_kernel_options(change)
    change.add_argument("file", type=Path, help="Kernel image to switch to")

    update = subparsers.add_parser(
        Command.UPDATE_KERNEL.value,
        help="Switch to the upstream kernel named in the configuration",
    )
    _add_kernel_options(update)

    return parser


def parse_args(argv: list[str]) -> CliOptions:
    ns = build_parser().parse_args(argv)
    command = Command(ns.command)

    if command is Command.DEPLOY_BOOT_FILES:
        return CliOptions(command=command, config=ns.config, debug=ns.debug)

    return CliOptions(
        command=command,
        config=ns.config,
        kernel_file=getattr(ns, "file", None),
        hard_link=ns.hard_link,
        compare_kernels=CompareKernels(ns.compare_kernels) if ns.compare_kernels else None,
        debug=ns.debug,
    )


def parse_update_usb_boot_args(argv: list[str]) -> CliOptions:
    parser = argparse.ArgumentParser(
        prog="update-usb-boot",
        description="Mount the USB boot device, replace its boot files with the local ones and unmount it",
    )
    _add_common_options(parser)
    ns = parser.parse_args(argv)
    return CliOptions(command=Command.DEPLOY_BOOT_FILES, config=ns.config, debug=ns.debug)
