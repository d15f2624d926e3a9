from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from .config import load_config
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import release_resources, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .workflows import build_steps, workflow_names

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def run(
    *,
    workflow: str,
    config_path: Optional[str] = None,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    overrides: Optional[Dict[str, Any]] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    verbose: bool = False,
) -> Dict[str, Any]:
    """Run a provisioning workflow, persisting state for resume.

    Loop devices and mounts acquired by the run are released before this
    returns, whether the pipeline succeeded or not.
    """

    actual_log_path = configure_logging(
        log_path=log_path, level=logging.DEBUG if verbose else logging.INFO
    )

    state = ensure_defaults(load_state(state_path))
    paths = state["execution"]["paths"]
    paths["log_path_requested"] = log_path
    paths["log_path_actual"] = actual_log_path

    cfg = load_config(config_path, workflow=workflow, overrides=overrides)
    previous = (state.get("config") or {}).get("workflow")
    if previous and previous != workflow:
        logger.warning("State file was written by workflow %s; starting over for %s", previous, workflow)
        state["execution"]["completed_steps"] = []
    state["config"] = cfg.as_dict()

    steps = build_steps(cfg)

    try:
        result = run_pipeline(
            state=state,
            steps=steps,
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        state["execution"].setdefault("summary", {})["ran_steps"] = result.ran_steps
        state["execution"].setdefault("summary", {})["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        logger.exception("Provisioning failed")
        state["execution"].setdefault("errors", []).append(
            {
                "step": state["execution"].get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        for err in release_resources(state, steps):
            state["execution"].setdefault("errors", []).append({"step": "teardown", "error": err})
        save_state(state_path, state)


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    kargs: Optional[List[str]] = args.karg or None
    return {
        "image": args.image,
        "disk_image": args.disk_image,
        "image_size": args.size,
        "work_dir": args.work_dir,
        "systemd_efi": args.systemd_efi,
        "bootc_bin": args.bootc_bin,
        "kargs": kargs,
        "dry_run": True if args.dry_run else None,
    }


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="bootc-provision")
    p.add_argument("workflow", choices=workflow_names(), help="Provisioning workflow to run")
    p.add_argument("systemd_efi_pos", nargs="?", default=None, metavar="SYSTEMD_EFI", help="systemd-boot EFI binary")
    p.add_argument("bootc_bin_pos", nargs="?", default=None, metavar="BOOTC_BIN", help="Locally built bootc binary")
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to run state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to log file")
    p.add_argument("--image", default=None, help="Container image to install (also IMAGE)")
    p.add_argument("--disk-image", default=None, help="Disk image file, relative to the work dir (also DISKIMAGE)")
    p.add_argument("--size", default=None, help="Disk image size, e.g. 15G")
    p.add_argument("--work-dir", default=None, help="Scratch directory, wiped by to-filesystem workflows")
    p.add_argument("--systemd-efi", default=None, help="systemd-boot EFI binary (also SYSTEMD_EFI_PATH)")
    p.add_argument("--bootc-bin", default=None, help="bootc binary to bind over the image's (also BOOTC_BIN_PATH)")
    p.add_argument("--karg", action="append", default=[], help="Kernel argument for bootc install (repeatable)")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 40_bootc_install)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("-v", "--verbose", action="store_true", help="Log command output")

    args = p.parse_args(argv)
    args.systemd_efi = args.systemd_efi or args.systemd_efi_pos
    args.bootc_bin = args.bootc_bin or args.bootc_bin_pos

    run(
        workflow=args.workflow,
        config_path=args.config,
        state_path=args.state,
        log_path=args.log,
        overrides=_overrides(args),
        start_at=args.start_at,
        stop_after=args.stop_after,
        force=args.force,
        verbose=args.verbose,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
