from __future__ import annotations

from typing import Any, Dict, List

from ..config import config_of
from ..resources import ensure_loop, ensure_mounted, mount_tracked, release_all
from ..lib.bootloader import edit_bls_options, install_systemd_boot
from ..lib.loopdev import partition_path, partx_update
from ..lib.storage import ROOT_PARTITION


class InstallBootloaderStep:
    step_id = "50_install_bootloader"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        dry_run = cfg.dry_run
        exe = state.setdefault("execution", {})
        paths = exe.get("paths") or {}

        # to-disk: bootc detached its own loop device when it finished.
        # to-filesystem: a resumed run no longer holds the one from 30_partition_fs.
        device = ensure_loop(state, str(cfg.disk_image_path), dry_run=dry_run)
        partx_update(device, dry_run=dry_run)
        devices = exe["devices"]

        if cfg.partitions_disk:
            root_part = partition_path(device, ROOT_PARTITION)
            devices["root_part"] = root_part
            ensure_mounted(state, root_part, str(cfg.mnt_dir), dry_run=dry_run)

        esp_part = partition_path(device, cfg.esp_partition)
        devices["esp_part"] = esp_part
        mount_tracked(state, esp_part, str(cfg.efi_dir), dry_run=dry_run)

        install_systemd_boot(
            esp_root=str(cfg.efi_dir),
            efi_binary=paths.get("systemd_efi") or str(cfg.staged_efi),
            vendor=cfg.efi_vendor,
            timeout=cfg.loader_timeout,
            remove_grub_cfg=cfg.remove_grub_cfg,
            dry_run=dry_run,
        )

        if cfg.bls_entry and cfg.entry_kargs:
            options = edit_bls_options(
                str(cfg.mnt_dir / cfg.bls_entry),
                cfg.entry_kargs,
                dry_run=dry_run,
            )
            exe.setdefault("decisions", {})["bls_options"] = options

        return state

    def teardown(self, state: Dict[str, Any]) -> List[str]:
        return release_all(state, dry_run=config_of(state).dry_run)
