from __future__ import annotations

import logging
from typing import Any, Dict, List

from .lib import loopdev, mounts
from .state_store import forget_resource, held_resources, record_resource

logger = logging.getLogger(__name__)

LOOP_DEVICES = "loop_devices"
MOUNTS = "mounts"


def attach_loop(state: Dict[str, Any], image: str, *, dry_run: bool = False) -> str:
    device = loopdev.attach(image, partscan=True, dry_run=dry_run)
    record_resource(state, LOOP_DEVICES, device)
    return device


def mount_tracked(state: Dict[str, Any], source: str, target: str, *, dry_run: bool = False) -> None:
    mounts.mount(source, target, dry_run=dry_run)
    record_resource(state, MOUNTS, target)


def ensure_loop(state: Dict[str, Any], image: str, *, dry_run: bool = False) -> str:
    """Return the loop device this run holds for ``image``, attaching one if needed.

    A device named in ``execution.devices`` by an earlier run is only reused
    while it is still held; otherwise the image is attached again.
    """

    devices = state.setdefault("execution", {}).setdefault("devices", {})
    device = devices.get("loop")
    if device and device in held_resources(state, LOOP_DEVICES):
        return device
    if device:
        logger.info("Loop device %s from a previous run is gone; re-attaching %s", device, image)
    device = attach_loop(state, image, dry_run=dry_run)
    devices["loop"] = device
    return device


def ensure_mounted(state: Dict[str, Any], source: str, target: str, *, dry_run: bool = False) -> None:
    if target in held_resources(state, MOUNTS):
        return
    logger.info("Re-mounting %s at %s", source, target)
    mount_tracked(state, source, target, dry_run=dry_run)


def _forget_device(state: Dict[str, Any], device: str) -> None:
    # Partition paths are derived from the loop device and go stale with it.
    devices = (state.get("execution") or {}).get("devices") or {}
    if devices.get("loop") == device:
        for key in ("loop", "esp_part", "boot_part", "root_part"):
            devices.pop(key, None)


def release_all(state: Dict[str, Any], *, dry_run: bool = False) -> List[str]:
    """Unmount and detach everything this run still holds.

    Mounts go first, newest first, then loop devices. Failures are logged
    and returned; every resource is attempted regardless.
    """

    errors: List[str] = []

    for target in reversed(held_resources(state, MOUNTS)):
        try:
            mounts.umount(target, recursive=True, dry_run=dry_run)
        except RuntimeError as e:
            logger.error("Failed to unmount %s: %s", target, e)
            errors.append(str(e))
            continue
        forget_resource(state, MOUNTS, target)

    for device in reversed(held_resources(state, LOOP_DEVICES)):
        try:
            loopdev.detach(device, dry_run=dry_run)
        except RuntimeError as e:
            logger.error("Failed to detach %s: %s", device, e)
            errors.append(str(e))
            continue
        forget_resource(state, LOOP_DEVICES, device)
        _forget_device(state, device)

    return errors
