"""tmt test plans for the provisioning workflows.

Plans are fmf YAML: keys starting with ``/`` are plans, every other top
level key is a default inherited by each plan.
"""

from __future__ import annotations

import argparse
import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .config import WORKFLOW_PRESETS

logger = logging.getLogger(__name__)

DEFAULT_PROVISION_HOW = "virtual"


@dataclass(frozen=True)
class Scenario:
    name: str
    summary: str
    image: str
    tests: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_fmf(self, *, provision_how: str = DEFAULT_PROVISION_HOW) -> Dict[str, Any]:
        plan: Dict[str, Any] = {
            "summary": self.summary,
            "provision": {"how": provision_how, "image": self.image},
            "discover": {"how": "fmf"},
            "execute": {"how": "tmt"},
        }
        if self.tests:
            plan["discover"]["test"] = list(self.tests)
        plan.update(copy.deepcopy(self.extra))
        return plan


def _merge(defaults: Dict[str, Any], plan: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(defaults)
    for key, value in plan.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = {**out[key], **value}
        else:
            out[key] = value
    return out


def parse_plan(data: Dict[str, Any], *, source: str = "<plan>") -> List[Scenario]:
    defaults = {k: v for k, v in data.items() if not str(k).startswith("/")}
    scenarios: List[Scenario] = []

    for name, body in data.items():
        if not str(name).startswith("/"):
            continue
        if not isinstance(body, dict):
            raise ValueError(f"{source}: plan {name} must be a mapping")
        plan = _merge(defaults, body)

        provision = plan.pop("provision", None) or {}
        image = provision.get("image") if isinstance(provision, dict) else None
        if not image:
            raise ValueError(f"{source}: plan {name} has no provision image")

        discover = plan.pop("discover", None) or {}
        tests = []
        if isinstance(discover, dict):
            tests = discover.get("test") or []
        if isinstance(tests, str):
            tests = [tests]

        summary = str(plan.pop("summary", "") or "")
        plan.pop("execute", None)
        scenarios.append(
            Scenario(name=str(name), summary=summary, image=str(image), tests=tuple(tests), extra=plan)
        )

    return scenarios


def load_plan(path: str) -> List[Scenario]:
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: plan document must be a mapping")
    scenarios = parse_plan(data, source=str(p))
    logger.info("Loaded %d scenarios from %s", len(scenarios), path)
    return scenarios


def render_plan(scenarios: List[Scenario], *, provision_how: str = DEFAULT_PROVISION_HOW) -> str:
    names = [s.name for s in scenarios]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ValueError(f"Duplicate scenario names: {', '.join(dupes)}")
    doc = {s.name: s.to_fmf(provision_how=provision_how) for s in scenarios}
    return yaml.safe_dump(doc, sort_keys=False)


def default_scenarios() -> List[Scenario]:
    """One scenario per provisioning workflow."""

    return [
        Scenario(
            name=f"/install-{workflow}",
            summary=f"bootc install {preset['install_target']} via the {workflow} workflow",
            image=preset["image"],
            tests=(f"/tests/install-{workflow}",),
        )
        for workflow, preset in WORKFLOW_PRESETS.items()
    ]


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="bootc-test-plan")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("list", help="List scenarios in a plan file")
    sp.add_argument("plan")

    sp = sub.add_parser("render", help="Render the default plan for all workflows")
    sp.add_argument("--output", default=None)
    sp.add_argument("--provision-how", default=DEFAULT_PROVISION_HOW)

    args = p.parse_args(argv)

    if args.cmd == "list":
        for s in load_plan(args.plan):
            print(f"{s.name}\t{s.image}")
        return 0

    text = render_plan(default_scenarios(), provision_how=args.provision_how)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
    else:
        print(text, end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
