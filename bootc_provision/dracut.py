"""dracut module that keeps OSTree-only CoreOS units out of composefs boots.

The module is generated rather than checked in: ``write_module`` lays out a
``modules.d/40bootc-coreos`` directory (module-setup.sh plus the drop-ins),
and ``install_module`` performs the same copies dracut's ``inst_simple``
does, for building or inspecting an initramfs tree without dracut.
"""

from __future__ import annotations

import argparse
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .logging_utils import configure_logging

logger = logging.getLogger(__name__)

MODULE_NAME = "40bootc-coreos"
DEPENDS = ("systemd",)

DROPIN_UNITS = (
    "coreos-boot-edit",
    "coreos-ignition-unique-boot",
    "ignition-ostree-check-rootfs-size",
    "ignition-ostree-growfs",
    "ignition-ostree-mount-var",
    "ignition-ostree-transposefs-autosave-xfs",
    "ignition-ostree-transposefs-detect",
    "ignition-ostree-transposefs-restore",
    "ignition-ostree-transposefs-save",
    "ignition-ostree-uuid-boot",
    "ignition-ostree-uuid-root",
)

PRESET_NAME = "bootc-disable.preset"

# These units assume an ostree= deployment; composefs-native boots have none.
DROPIN_CONTENT = "[Unit]\nConditionKernelCommandLine=ostree\n"
PRESET_CONTENT = (
    "disable bootc-fetch-apply-updates.timer\n"
    "disable bootc-fetch-apply-updates.service\n"
)


@dataclass(frozen=True)
class ModuleFile:
    source: str  # relative to the module directory
    dest: str  # absolute path inside the initramfs
    content: str


def module_files() -> List[ModuleFile]:
    files = [
        ModuleFile(
            source=f"{unit}.conf",
            dest=f"/etc/systemd/system/{unit}.service.d/{unit}.conf",
            content=DROPIN_CONTENT,
        )
        for unit in DROPIN_UNITS
    ]
    files.append(
        ModuleFile(
            source=PRESET_NAME,
            dest=f"/etc/systemd/system-preset/{PRESET_NAME}",
            content=PRESET_CONTENT,
        )
    )
    return files


def render_module_setup() -> str:
    lines = [
        "#!/bin/bash",
        "# -*- mode: shell-script; indent-tabs-mode: nil; sh-basic-offset: 4; -*-",
        "# ex: ts=8 sw=4 sts=4 et filetype=sh",
        "",
        "check() {",
        "    return 0",
        "}",
        "",
        "depends() {",
        f"    echo {' '.join(DEPENDS)}",
        "}",
        "",
        "install() {",
    ]
    for i, f in enumerate(module_files()):
        if i:
            lines.append("")
        lines.append(f'    inst_simple "$moddir/{f.source}" \\')
        lines.append(f'    "{f.dest}"')
    lines.append("}")
    return "\n".join(lines) + "\n"


def write_module(moddir: str) -> List[Path]:
    """Write the module directory and return the files created."""

    d = Path(moddir)
    d.mkdir(parents=True, exist_ok=True)

    setup = d / "module-setup.sh"
    setup.write_text(render_module_setup(), encoding="utf-8")
    setup.chmod(0o755)
    written = [setup]

    for f in module_files():
        out = d / f.source
        out.write_text(f.content, encoding="utf-8")
        written.append(out)

    logger.info("Wrote dracut module %s (%d files)", d, len(written))
    return written


def install_module(moddir: str, initramfs_root: str, *, dry_run: bool = False) -> List[Path]:
    """Copy the module's files into an initramfs tree, like ``inst_simple``."""

    src_dir = Path(moddir)
    root = Path(initramfs_root)
    installed: List[Path] = []

    for f in module_files():
        src = src_dir / f.source
        if not src.is_file():
            raise FileNotFoundError(str(src))
        dst = root / f.dest.lstrip("/")
        if dry_run:
            logger.info("Would install %s -> %s", src, dst)
        else:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
        installed.append(dst)

    logger.info("Installed %d files from %s into %s", len(installed), src_dir, root)
    return installed


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="bootc-dracut-module")
    p.add_argument("--log", default=None, help="Also write a log file here")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("write", help="Generate the dracut module directory")
    sp.add_argument("moddir", help=f"Output directory, e.g. /usr/lib/dracut/modules.d/{MODULE_NAME}")

    sp = sub.add_parser("install", help="Install the module files into an initramfs tree")
    sp.add_argument("moddir")
    sp.add_argument("initramfs_root")
    sp.add_argument("--dry-run", action="store_true")

    sub.add_parser("show", help="Print module-setup.sh")

    args = p.parse_args(argv)
    if args.log:
        configure_logging(log_path=args.log, also_console=False)

    if args.cmd == "write":
        for path in write_module(args.moddir):
            print(path)
    elif args.cmd == "install":
        for path in install_module(args.moddir, args.initramfs_root, dry_run=bool(args.dry_run)):
            print(path)
    else:
        print(render_module_setup(), end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
