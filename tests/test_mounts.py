from __future__ import annotations

import os

from bootc_provision.lib import mounts


def test_is_mounted_reads_mount_table(tmp_path) -> None:
    target = tmp_path / "my mnt"
    target.mkdir()
    table = tmp_path / "mounts"
    escaped = os.path.realpath(target).replace(" ", "\\040")
    table.write_text(f"proc /proc proc rw 0 0\n/dev/loop0p3 {escaped} ext4 rw 0 0\n")

    assert mounts.is_mounted(str(target), mounts_file=str(table))
    assert not mounts.is_mounted(str(tmp_path), mounts_file=str(table))


def test_mounted_context_unmounts(fake_run, tmp_path) -> None:
    target = str(tmp_path / "efi")
    with mounts.mounted("/dev/loop0p1", target):
        assert fake_run.calls == [["mount", "/dev/loop0p1", target]]
    assert fake_run.calls[-1] == ["umount", "--recursive", target]
