from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .command import run_cmd
from .env import (
    BOOTFS_UUID,
    ESP_TYPE_GUID,
    LINUX_DATA_TYPE_GUID,
    ROOT_TYPE_GUID,
    ROOTFS_UUID,
)
from .loopdev import partition_path, partx_update

logger = logging.getLogger(__name__)

ESP_PARTITION = 1
BOOT_PARTITION = 2
ROOT_PARTITION = 3

# truncate(1) suffixes: K and KiB are powers of 1024, KB powers of 1000.
_SIZE_RE = re.compile(r"^(\d+)(?:([KMGTPE])(iB|B)?)?$", re.IGNORECASE)
_SIZE_EXPONENTS = {"K": 1, "M": 2, "G": 3, "T": 4, "P": 5, "E": 6}


def parse_size(size: str) -> int:
    """Parse a truncate(1) style size (``15G``, ``15GiB``, ``15GB``) into bytes."""

    m = _SIZE_RE.match(str(size).strip())
    if not m:
        raise ValueError(f"Unsupported size: {size!r}")
    count, unit, suffix = m.groups()
    if not unit:
        return int(count)
    base = 1000 if (suffix or "").lower() == "b" else 1024
    return int(count) * base ** _SIZE_EXPONENTS[unit.upper()]


@dataclass(frozen=True)
class PartitionSpec:
    name: str
    type_guid: str
    size: Optional[str] = None  # None fills the rest of the disk

    def sfdisk_line(self) -> str:
        fields = []
        if self.size:
            fields.append(f"size={self.size}")
        fields.append(f"type={self.type_guid}")
        fields.append(f'name="{self.name}"')
        return ", ".join(fields)


@dataclass(frozen=True)
class PartitionLayout:
    partitions: Tuple[PartitionSpec, ...]
    label_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def render_sfdisk_script(self) -> str:
        lines = ["label: gpt", f"label-id: {self.label_id}"]
        lines.extend(p.sfdisk_line() for p in self.partitions)
        return "\n".join(lines) + "\n"


DEFAULT_LAYOUT_PARTITIONS = (
    PartitionSpec(name="EFI-SYSTEM", type_guid=ESP_TYPE_GUID, size="1024MiB"),
    PartitionSpec(name="boot", type_guid=LINUX_DATA_TYPE_GUID, size="1024MiB"),
    PartitionSpec(name="root", type_guid=ROOT_TYPE_GUID),
)


def default_layout() -> PartitionLayout:
    """ESP, ext4 /boot and a verity-enabled ext4 root."""
    return PartitionLayout(partitions=DEFAULT_LAYOUT_PARTITIONS)


@dataclass(frozen=True)
class PartitionResult:
    esp_part: str
    boot_part: str
    root_part: str


def create_image(path: str, size: str, *, dry_run: bool = False) -> None:
    run_cmd(["rm", "-f", path], dry_run=dry_run)
    run_cmd(["truncate", "-s", size, path], dry_run=dry_run)
    logger.info("Created sparse disk image %s (%s)", path, size)


def partition_and_format(
    *,
    device: str,
    layout: PartitionLayout,
    bootfs_uuid: str = BOOTFS_UUID,
    rootfs_uuid: str = ROOTFS_UUID,
    dry_run: bool = False,
) -> PartitionResult:
    """Write the GPT table and create filesystems on a block device.

    Layout (by partition index):
    - 1: ESP (FAT)
    - 2: /boot (ext4, label boot)
    - 3: root (ext4 with fs-verity, label root)
    """

    if len(layout.partitions) != 3:
        raise ValueError(f"Expected a 3 partition layout, got {len(layout.partitions)}")

    script = layout.render_sfdisk_script()
    logger.info("Partitioning %s:\n%s", device, script)
    run_cmd(["sfdisk", "--wipe=always", device], input_text=script, dry_run=dry_run)

    partx_update(device, dry_run=dry_run)

    esp_part = partition_path(device, ESP_PARTITION)
    boot_part = partition_path(device, BOOT_PARTITION)
    root_part = partition_path(device, ROOT_PARTITION)

    run_cmd(["mkfs.fat", esp_part], dry_run=dry_run)
    run_cmd(["mkfs.ext4", "-L", "boot", "-U", bootfs_uuid, boot_part], dry_run=dry_run)
    run_cmd(["mkfs.ext4", "-O", "verity", "-L", "root", "-U", rootfs_uuid, root_part], dry_run=dry_run)

    return PartitionResult(esp_part=esp_part, boot_part=boot_part, root_part=root_part)


def read_partition_table(device: str, *, dry_run: bool = False) -> Dict[str, Any]:
    r = run_cmd(["sfdisk", "--json", device], dry_run=dry_run)
    if dry_run:
        return {}
    data = json.loads(r.stdout or "{}")
    table = data.get("partitiontable")
    if not isinstance(table, dict):
        raise RuntimeError(f"sfdisk returned no partition table for {device}")
    return table


def verify_layout(table: Dict[str, Any], layout: PartitionLayout) -> List[str]:
    """Compare a parsed ``sfdisk --json`` table with the expected layout.

    Returns a list of human readable problems; empty means it matches.
    """

    problems: List[str] = []
    label = table.get("label")
    if label != "gpt":
        problems.append(f"expected gpt label, found {label!r}")

    parts = table.get("partitions") or []
    if len(parts) != len(layout.partitions):
        problems.append(f"expected {len(layout.partitions)} partitions, found {len(parts)}")

    for idx, (want, got) in enumerate(zip(layout.partitions, parts), start=1):
        got_type = str(got.get("type") or "")
        if got_type.lower() != want.type_guid.lower():
            problems.append(f"partition {idx}: type {got_type} != {want.type_guid}")
        got_name = got.get("name")
        if got_name != want.name:
            problems.append(f"partition {idx}: name {got_name!r} != {want.name!r}")

    return problems
