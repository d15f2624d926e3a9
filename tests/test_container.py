from __future__ import annotations

import pytest

from bootc_provision.config import load_config
from bootc_provision.lib.container import BootcInstall, ContainerRun, Volume, imgref
from bootc_provision.steps.step_40_bootc_install import build_container_run


def test_imgref() -> None:
    assert imgref("docker", "quay.io/a/b:1") == "docker://quay.io/a/b:1"
    assert imgref("containers-storage", "quay.io/a/b:1") == "containers-storage:quay.io/a/b:1"


def test_bootc_install_to_disk_flags() -> None:
    argv = BootcInstall(
        target="to-disk",
        path="/output/test.img",
        source_imgref="containers-storage:img",
        target_imgref="img",
        target_transport="docker",
        filesystem="ext4",
        wipe=True,
        generic_image=True,
        via_loopback=True,
        kargs=("selinux=1", "audit=0"),
    ).argv()
    assert argv == [
        "bootc", "install", "to-disk",
        "--composefs-native",
        "--bootloader=systemd",
        "--source-imgref", "containers-storage:img",
        "--target-imgref=img",
        "--target-transport=docker",
        "--filesystem=ext4",
        "--wipe",
        "--generic-image",
        "--via-loopback",
        "--karg", "selinux=1",
        "--karg", "audit=0",
        "/output/test.img",
    ]


def test_bootc_install_rejects_disk_flags_for_filesystem() -> None:
    with pytest.raises(ValueError):
        BootcInstall(target="to-filesystem", path="/var/mnt", source_imgref="x", wipe=True).argv()
    with pytest.raises(ValueError):
        BootcInstall(target="to-somewhere", path="/x", source_imgref="x").argv()


def test_container_run_argv() -> None:
    run = ContainerRun(
        image="quay.io/img",
        command=("bootc", "status"),
        volumes=(Volume("/dev", "/dev"), Volume("/x/bootc", "/usr/bin/bootc", "ro,Z")),
        env={"RUST_LOG": "debug"},
        host_network=True,
    )
    assert run.argv() == [
        "podman", "run", "--rm", "--privileged", "--pid=host", "--net=host",
        "--security-opt", "label=type:unconfined_t",
        "--env", "RUST_LOG=debug",
        "-v", "/dev:/dev",
        "-v", "/x/bootc:/usr/bin/bootc:ro,Z",
        "quay.io/img", "bootc", "status",
    ]


def test_to_disk_container_mounts_image_directory(tmp_path) -> None:
    cfg = load_config(workflow="to-disk", env={}, overrides={"work_dir": str(tmp_path)})
    argv = build_container_run(cfg).argv()

    assert f"{tmp_path}:/output" in argv
    assert "/var/tmp:/var/tmp" in argv
    assert "--net=host" not in argv
    assert argv[-1] == "/output/test.img"
    assert "--source-imgref" in argv
    assert argv[argv.index("--source-imgref") + 1] == f"containers-storage:{cfg.image}"
    assert argv.count("--karg") == 3


def test_to_filesystem_container_binds_bootc_and_mnt(tmp_path) -> None:
    cfg = load_config(workflow="to-filesystem", env={}, overrides={"work_dir": str(tmp_path)})
    argv = build_container_run(cfg, bootc_bin=str(tmp_path / "bootc")).argv()

    assert f"{tmp_path}/bootc:/usr/bin/bootc:ro,Z" in argv
    assert f"{tmp_path}/mnt:/var/mnt" in argv
    assert "RUST_LOG=debug" in argv
    assert argv[-5:] == [
        "--composefs-native",
        "--bootloader=systemd",
        "--source-imgref",
        f"docker://{cfg.image}",
        "/var/mnt",
    ]
