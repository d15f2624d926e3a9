from __future__ import annotations

import pytest

from bootc_provision.lib import loopdev
from bootc_provision.lib.command import CommandError


def test_partition_path() -> None:
    assert loopdev.partition_path("/dev/loop0", 2) == "/dev/loop0p2"
    assert loopdev.partition_path("/dev/nvme0n1", 1) == "/dev/nvme0n1p1"
    assert loopdev.partition_path("/dev/sda", 3) == "/dev/sda3"


def test_attach_returns_reported_device(fake_run) -> None:
    fake_run.respond(("losetup", "--find"), "/dev/loop5\n")
    assert loopdev.attach("/tmp/disk.img") == "/dev/loop5"
    assert fake_run.calls == [["losetup", "--find", "--show", "--partscan", "/tmp/disk.img"]]


def test_attach_without_output_fails(fake_run) -> None:
    with pytest.raises(RuntimeError):
        loopdev.attach("/tmp/disk.img")


def test_attach_dry_run_does_not_execute(fake_run) -> None:
    assert loopdev.attach("/tmp/disk.img", dry_run=True) == loopdev.DRY_RUN_DEVICE
    assert fake_run.calls == []


def test_release_stale_only_touches_backing_devices(fake_run) -> None:
    fake_run.respond(("losetup", "--associated"), "/dev/loop1\n/dev/loop4\n")
    released = loopdev.release_stale("/tmp/disk.img")
    assert released == ["/dev/loop1", "/dev/loop4"]
    assert fake_run.find("losetup", "--detach") == [
        ["losetup", "--detach", "/dev/loop1"],
        ["losetup", "--detach", "/dev/loop4"],
    ]
    assert fake_run.find("losetup", "--detach-all") == []


def test_detach_failure_raises(fake_run) -> None:
    fake_run.fail(("losetup", "--detach"))
    with pytest.raises(CommandError) as exc:
        loopdev.detach("/dev/loop9")
    assert exc.value.returncode == 1
    assert exc.value.argv == ["losetup", "--detach", "/dev/loop9"]
