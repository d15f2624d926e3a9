from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .command import run_cmd

PROC_MOUNTS = "/proc/self/mounts"


def _unescape(field: str) -> str:
    # /proc/mounts octal-escapes whitespace and backslashes
    return field.replace("\\040", " ").replace("\\011", "\t").replace("\\012", "\n").replace("\\134", "\\")


def is_mounted(path: str, *, mounts_file: str = PROC_MOUNTS) -> bool:
    target = os.path.realpath(path)
    try:
        lines = Path(mounts_file).read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return False
    for line in lines:
        fields = line.split()
        if len(fields) >= 2 and _unescape(fields[1]) == target:
            return True
    return False


def mount(source: str, target: str, *, dry_run: bool = False) -> None:
    if not dry_run:
        Path(target).mkdir(parents=True, exist_ok=True)
    run_cmd(["mount", source, target], dry_run=dry_run)


def umount(target: str, *, recursive: bool = True, check: bool = True, dry_run: bool = False) -> None:
    argv = ["umount"]
    if recursive:
        argv.append("--recursive")
    argv.append(target)
    run_cmd(argv, check=check, dry_run=dry_run)


@contextmanager
def mounted(source: str, target: str, *, dry_run: bool = False) -> Iterator[str]:
    mount(source, target, dry_run=dry_run)
    try:
        yield target
    finally:
        umount(target, dry_run=dry_run)
