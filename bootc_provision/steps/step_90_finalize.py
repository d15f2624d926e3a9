from __future__ import annotations

import logging
from typing import Any, Dict

from ..config import config_of
from ..resources import release_all

logger = logging.getLogger(__name__)


class FinalizeStep:
    step_id = "90_finalize"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        exe = state.setdefault("execution", {})

        errors = release_all(state, dry_run=cfg.dry_run)
        if errors:
            raise RuntimeError("Failed to release resources: " + "; ".join(errors))

        # Device names are only meaningful while attached.
        exe["devices"] = {}
        logger.info("Finalize summary: %s", exe.get("decisions") or {})
        logger.info("Disk image ready: %s", cfg.disk_image_path)
        return state
