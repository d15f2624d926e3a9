from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from ..config import config_of
from ..lib.command import require_tools

logger = logging.getLogger(__name__)

COMMON_TOOLS = ["podman", "losetup", "partx", "mount", "umount", "truncate"]
PARTITION_TOOLS = ["sfdisk", "mkfs.fat", "mkfs.ext4"]


class PreflightStep:
    step_id = "00_preflight"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        decisions = state.setdefault("execution", {}).setdefault("decisions", {})

        if not cfg.dry_run:
            if os.geteuid() != 0:
                raise RuntimeError("Root privileges required")
            tools: List[str] = list(COMMON_TOOLS)
            if cfg.partitions_disk:
                tools.extend(PARTITION_TOOLS)
            require_tools(tools)

        if not cfg.systemd_efi or not Path(cfg.systemd_efi).is_file():
            raise RuntimeError(
                "Need the systemd-boot EFI binary (systemd_efi / SYSTEMD_EFI_PATH), "
                f"got: {cfg.systemd_efi!r}"
            )

        if cfg.bootc_bin and Path(cfg.bootc_bin).is_file():
            decisions["bootc_binary"] = "override"
        else:
            logger.warning("No bootc binary provided; using the one shipped in %s", cfg.image)
            decisions["bootc_binary"] = "image"

        if cfg.warning:
            logger.warning("%s: %s", cfg.workflow, cfg.warning)

        decisions["workflow"] = cfg.workflow
        decisions["image"] = cfg.image
        logger.info("Preflight ok (workflow=%s image=%s)", cfg.workflow, cfg.image)
        return state
