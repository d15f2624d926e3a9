from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    work_dir: str = "/var/tmp/bootc"
    state_default: str = "/var/lib/bootc-provision/state.json"
    log_default: str = "/var/log/bootc-provision.log"
    container_storage: str = "/var/lib/containers"
    container_mnt: str = "/var/mnt"
    container_output: str = "/output"


PATHS = Paths()

# Fixed filesystem UUIDs so boot entries and fstab stay stable across rebuilds.
BOOTFS_UUID = "96d15588-3596-4b3c-adca-a2ff7279ea63"
ROOTFS_UUID = "910678ff-f77e-4a7d-8d53-86f2ac47a823"

ESP_TYPE_GUID = "C12A7328-F81F-11D2-BA4B-00A0C93EC93B"
LINUX_DATA_TYPE_GUID = "0FC63DAF-8483-4772-8E79-3D69D8477DE4"
ROOT_TYPE_GUID = "4f68bce3-e8cd-4db1-96e7-fbcaf984b709"

DEFAULT_IMAGE_SIZE = "15G"
