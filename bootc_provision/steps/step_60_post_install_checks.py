from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import config_of
from ..resources import ensure_loop
from ..lib.storage import default_layout, parse_size, read_partition_table, verify_layout

logger = logging.getLogger(__name__)


class PostInstallChecksStep:
    step_id = "60_post_install_checks"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        if cfg.dry_run:
            logger.info("Skipping post-install checks in dry-run mode")
            return state

        disk = cfg.disk_image_path
        if not disk.is_file():
            raise RuntimeError(f"Post-install check failed: missing {disk}")
        actual = disk.stat().st_size
        expected = parse_size(cfg.image_size)
        if actual != expected:
            raise RuntimeError(f"Post-install check failed: {disk} is {actual} bytes, expected {expected}")

        if cfg.partitions_disk:
            device = ensure_loop(state, str(disk))
            problems = verify_layout(read_partition_table(device), default_layout())
            if problems:
                raise RuntimeError("Post-install check failed: " + "; ".join(problems))

        logger.info("Post-install checks passed")
        return state
