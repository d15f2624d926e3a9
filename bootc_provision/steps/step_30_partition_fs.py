from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..config import config_of
from ..resources import attach_loop, mount_tracked, release_all
from ..lib.storage import default_layout, partition_and_format

logger = logging.getLogger(__name__)


class PartitionFilesystemStep:
    step_id = "30_partition_fs"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        dry_run = cfg.dry_run
        exe = state.setdefault("execution", {})

        layout = default_layout()
        device = attach_loop(state, str(cfg.disk_image_path), dry_run=dry_run)
        result = partition_and_format(device=device, layout=layout, dry_run=dry_run)

        exe["devices"] = {
            "loop": device,
            "esp_part": result.esp_part,
            "boot_part": result.boot_part,
            "root_part": result.root_part,
            "label_id": layout.label_id,
        }

        mnt = str(cfg.mnt_dir)
        mount_tracked(state, result.root_part, mnt, dry_run=dry_run)
        if not dry_run:
            (cfg.mnt_dir / "boot").mkdir(exist_ok=True)

        logger.info("Partitioned %s and mounted root at %s", device, mnt)
        return state

    def teardown(self, state: Dict[str, Any]) -> List[str]:
        return release_all(state, dry_run=config_of(state).dry_run)
