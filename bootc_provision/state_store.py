from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml

STATE_VERSION = 1


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "yaml":
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) == "yaml":
        p.write_text(yaml.safe_dump(state, sort_keys=False), encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding existing values)."""

    state.setdefault("version", STATE_VERSION)
    state.setdefault("config", {})
    state.setdefault("execution", {})

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("paths", {})
    exe.setdefault("devices", {})
    exe.setdefault("decisions", {})
    res = exe.setdefault("resources", {})
    res.setdefault("loop_devices", [])
    res.setdefault("mounts", [])

    return state


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed


def _resources(state: Dict[str, Any]) -> Dict[str, List[str]]:
    res = state.setdefault("execution", {}).setdefault("resources", {})
    res.setdefault("loop_devices", [])
    res.setdefault("mounts", [])
    return res


def record_resource(state: Dict[str, Any], kind: str, value: str) -> None:
    """Remember a loop device or mount point held by this run."""

    held = _resources(state)[kind]
    if value not in held:
        held.append(value)


def forget_resource(state: Dict[str, Any], kind: str, value: str) -> None:
    held = _resources(state)[kind]
    if value in held:
        held.remove(value)


def held_resources(state: Dict[str, Any], kind: str) -> List[str]:
    return list(_resources(state)[kind])
