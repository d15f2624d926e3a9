from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..config import InstallConfig, config_of
from ..lib import mounts
from ..lib.command import run_cmd
from ..lib.container import (
    BootcInstall,
    ContainerRun,
    Volume,
    bootc_binary_volume,
    standard_volumes,
)
from ..lib.env import PATHS

logger = logging.getLogger(__name__)


def build_container_run(cfg: InstallConfig, *, bootc_bin: str | None = None) -> ContainerRun:
    """The podman invocation that runs ``bootc install`` for a workflow."""

    extra: List[Volume] = []
    if bootc_bin:
        extra.append(bootc_binary_volume(bootc_bin))

    if cfg.install_target == "to-disk":
        disk = cfg.disk_image_path
        extra.append(Volume("/var/tmp", "/var/tmp"))
        extra.append(Volume(str(disk.parent), PATHS.container_output))
        install = BootcInstall(
            target="to-disk",
            path=f"{PATHS.container_output}/{disk.name}",
            source_imgref=cfg.source_imgref,
            bootloader=cfg.bootloader,
            target_imgref=cfg.image if cfg.target_transport else None,
            target_transport=cfg.target_transport,
            filesystem=cfg.filesystem,
            wipe=cfg.wipe,
            generic_image=cfg.generic_image,
            via_loopback=cfg.via_loopback,
            kargs=cfg.kargs,
        )
    else:
        extra.append(Volume(str(cfg.mnt_dir), PATHS.container_mnt))
        install = BootcInstall(
            target="to-filesystem",
            path=PATHS.container_mnt,
            source_imgref=cfg.source_imgref,
            bootloader=cfg.bootloader,
            target_imgref=cfg.image if cfg.target_transport else None,
            target_transport=cfg.target_transport,
            filesystem=cfg.filesystem,
            generic_image=cfg.generic_image,
            kargs=cfg.kargs,
            binary="/usr/bin/bootc",
        )

    env = {"RUST_LOG": cfg.rust_log} if cfg.rust_log else {}
    return ContainerRun(
        image=cfg.image,
        command=tuple(install.argv()),
        volumes=standard_volumes(extra),
        env=env,
        host_network=cfg.host_network,
    )


class BootcInstallStep:
    step_id = "40_bootc_install"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        paths = (state.get("execution") or {}).get("paths") or {}

        if cfg.partitions_disk and not cfg.dry_run and not mounts.is_mounted(str(cfg.mnt_dir)):
            raise RuntimeError(
                f"Target root {cfg.mnt_dir} is not mounted; "
                "re-run with --start-at 30_partition_fs --force"
            )

        container = build_container_run(cfg, bootc_bin=paths.get("bootc_bin"))
        run_cmd(container.argv(), dry_run=cfg.dry_run)

        logger.info("bootc install %s finished for %s", cfg.install_target, cfg.image)
        return state
