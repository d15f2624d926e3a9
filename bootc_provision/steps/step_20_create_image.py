from __future__ import annotations

from typing import Any, Dict

from ..config import config_of
from ..lib.storage import create_image


class CreateImageStep:
    step_id = "20_create_image"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = config_of(state)
        create_image(str(cfg.disk_image_path), cfg.image_size, dry_run=cfg.dry_run)
        return state
