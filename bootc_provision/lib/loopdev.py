from __future__ import annotations

import logging
from typing import List

from .command import run_cmd

logger = logging.getLogger(__name__)

# Returned in dry-run mode, where losetup never runs.
DRY_RUN_DEVICE = "/dev/loop0"


def partition_path(device: str, n: int) -> str:
    # loop, nvme and mmcblk devices use a p suffix
    if device.endswith(tuple("0123456789")):
        return f"{device}p{n}"
    return f"{device}{n}"


def attach(image: str, *, partscan: bool = True, dry_run: bool = False) -> str:
    """Attach an image file to the first free loop device and return it."""

    argv = ["losetup", "--find", "--show"]
    if partscan:
        argv.append("--partscan")
    argv.append(image)

    r = run_cmd(argv, dry_run=dry_run)
    device = (r.stdout or "").strip()
    if dry_run:
        return DRY_RUN_DEVICE
    if not device:
        raise RuntimeError(f"losetup did not report a device for {image}")
    logger.info("Attached %s to %s", image, device)
    return device


def detach(device: str, *, check: bool = True, dry_run: bool = False) -> None:
    run_cmd(["losetup", "--detach", device], check=check, dry_run=dry_run)


def devices_for(image: str, *, dry_run: bool = False) -> List[str]:
    """Loop devices currently backed by the given image file."""

    r = run_cmd(["losetup", "--associated", image, "--noheadings", "--output", "NAME"], check=False, dry_run=dry_run)
    if r.returncode != 0:
        return []
    return [line.strip() for line in r.stdout.splitlines() if line.strip()]


def release_stale(image: str, *, dry_run: bool = False) -> List[str]:
    """Detach leftovers from a previous run of the same image.

    Only devices backed by ``image`` are touched; other loop devices on the
    host are left alone.
    """

    released = []
    for dev in devices_for(image, dry_run=dry_run):
        logger.warning("Detaching stale loop device %s (backed by %s)", dev, image)
        detach(dev, check=False, dry_run=dry_run)
        released.append(dev)
    return released


def partx_update(device: str, *, dry_run: bool = False) -> None:
    # Make sure the kernel sees the new partition table.
    run_cmd(["partx", "--update", device], dry_run=dry_run)
