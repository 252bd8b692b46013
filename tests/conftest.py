from collections.abc import Iterator
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from usbbootmgr.config import DeployBootFilesConfig


@pytest.fixture
def fake_block_device() -> Iterator[None]:
    """Make every existing path look like a block special file."""
    with patch.object(Path, "is_block_device", return_value=True):
        yield


@pytest.fixture
def mock_mount_cmd() -> Iterator[Mock]:
    """Replace mount/umount with a mock; the "mounted" filesystem is the mount point directory itself."""
    with patch("usbbootmgr.deploy.run_command") as mock:
        yield mock


@pytest.fixture
def deploy_config(tmp_path: Path) -> DeployBootFilesConfig:
    device = tmp_path / "dev" / "sdz1"
    device.parent.mkdir()
    device.touch()

    mount_point = tmp_path / "mnt"
    (mount_point / "boot").mkdir(parents=True)
    (mount_point / "boot" / "old.img").write_bytes(b"stale")

    source = tmp_path / "usb-boot"
    source.mkdir()
    (source / "a.img").write_bytes(b"image a")
    (source / "b.img").write_bytes(b"image b")

    return DeployBootFilesConfig(
        block_device=device,
        mount_point=mount_point,
        source_directory=source,
        destination_subpath=Path("boot"),
    )
