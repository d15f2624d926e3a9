from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Dict

from ..config import config_of
from ..lib import loopdev, mounts
from ..lib.command import run_cmd

logger = logging.getLogger(__name__)


class PrepareWorkdirStep:
    step_id = "10_prepare_workdir"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        dry_run = cfg.dry_run
        work_dir = Path(cfg.work_dir)
        paths = state.setdefault("execution", {}).setdefault("paths", {})

        # Leftovers from an aborted earlier run would make rm -rf and losetup fail.
        for target in (cfg.mnt_dir, cfg.efi_dir):
            if mounts.is_mounted(str(target)):
                logger.warning("Unmounting stale mount %s", target)
                mounts.umount(str(target), check=False, dry_run=dry_run)
        if cfg.disk_image_path.exists():
            loopdev.release_stale(str(cfg.disk_image_path), dry_run=dry_run)

        if cfg.clean_work_dir:
            if work_dir.resolve() == Path("/"):
                raise RuntimeError("Refusing to clean / as the work directory")
            run_cmd(["rm", "-rf", str(work_dir)], dry_run=dry_run)

        if dry_run:
            logger.info("Would stage %s into %s", cfg.systemd_efi, work_dir)
        else:
            cfg.mnt_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(str(cfg.systemd_efi), cfg.staged_efi)
        paths["systemd_efi"] = str(cfg.staged_efi)

        if cfg.bootc_bin and Path(cfg.bootc_bin).is_file():
            if not dry_run:
                shutil.copy2(cfg.bootc_bin, cfg.staged_bootc)
            paths["bootc_bin"] = str(cfg.staged_bootc)
        else:
            paths.pop("bootc_bin", None)

        paths["work_dir"] = str(work_dir)
        paths["disk_image"] = str(cfg.disk_image_path)
        return state
