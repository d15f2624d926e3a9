from __future__ import annotations

import pytest

from bootc_provision.config import (
    FCOS_UKI_IMAGE,
    InstallConfig,
    WORKFLOW_PRESETS,
    config_of,
    load_config,
)


def test_preset_defaults() -> None:
    cfg = load_config(workflow="to-filesystem", env={})
    assert cfg.install_target == "to-filesystem"
    assert cfg.partitions_disk
    assert cfg.source_imgref == f"docker://{cfg.image}"
    assert cfg.bls_entry == "loader/entries/bootc-composefs-1.conf"
    assert "console=ttyS0,115000n" in cfg.entry_kargs

    disk = load_config(workflow="to-disk", env={})
    assert not disk.partitions_disk
    assert disk.esp_partition == 2
    assert disk.kargs == ("selinux=1", "enforcing=0", "audit=0")


def test_fcos_uki_preset() -> None:
    cfg = load_config(workflow="to-filesystem-uki-fcos", env={})
    assert cfg.image == FCOS_UKI_IMAGE
    assert cfg.disk_image == "test-filesystem-fcos-uki.img"
    assert cfg.source_imgref == f"containers-storage:{FCOS_UKI_IMAGE}"


def test_unknown_workflow() -> None:
    with pytest.raises(ValueError, match="to-disk"):
        load_config(workflow="to-cloud", env={})


def test_precedence_file_env_overrides(tmp_path) -> None:
    cfg_file = tmp_path / "provision.yaml"
    cfg_file.write_text(
        "image: quay.io/from/file:1\n"
        "image_size: 20G\n"
        "work_dir: /srv/file\n"
        "workflows:\n"
        "  to-filesystem-uki:\n"
        "    image_size: 30G\n"
    )
    env = {"IMAGE": "quay.io/from/env:2"}

    cfg = load_config(str(cfg_file), workflow="to-filesystem-uki", env=env, overrides={"work_dir": "/srv/cli", "image": None})

    assert cfg.image == "quay.io/from/env:2"
    assert cfg.image_size == "30G"
    assert cfg.work_dir == "/srv/cli"


def test_disk_image_path(tmp_path) -> None:
    cfg = load_config(workflow="to-disk", env={"DISKIMAGE": "out.img"}, overrides={"work_dir": str(tmp_path)})
    assert cfg.disk_image_path == tmp_path / "out.img"

    cfg = load_config(workflow="to-disk", env={"DISKIMAGE": "/abs/out.img"})
    assert str(cfg.disk_image_path) == "/abs/out.img"


def test_config_file_errors(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"), workflow="to-disk", env={})

    bad = tmp_path / "bad.yaml"
    bad.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(str(bad), workflow="to-disk", env={})

    typo = tmp_path / "typo.yaml"
    typo.write_text("imgae: x\n")
    with pytest.raises(ValueError, match="imgae"):
        load_config(str(typo), workflow="to-disk", env={})


def test_dict_roundtrip() -> None:
    cfg = load_config(workflow="to-disk", env={})
    again = InstallConfig.from_dict(cfg.as_dict())
    assert again == cfg
    assert config_of({"config": cfg.as_dict()}) == cfg
    with pytest.raises(RuntimeError):
        config_of({})


def test_every_preset_resolves() -> None:
    for name in WORKFLOW_PRESETS:
        assert load_config(workflow=name, env={}).workflow == name


def test_kargs_scalar_is_a_command_line(tmp_path) -> None:
    cfg_file = tmp_path / "c.yaml"
    cfg_file.write_text("kargs: quiet\nentry_kargs: 'console=ttyS0 rd.break=\"pre mount\"'\n")

    cfg = load_config(str(cfg_file), workflow="to-filesystem", env={})

    assert cfg.kargs == ("quiet",)
    assert cfg.entry_kargs == ("console=ttyS0", 'rd.break="pre mount"')
    assert InstallConfig.from_dict({"workflow": "x", "install_target": "to-disk", "kargs": None}).kargs == ()


def test_kargs_of_other_types_rejected(tmp_path) -> None:
    cfg_file = tmp_path / "c.yaml"
    cfg_file.write_text("kargs: 3\n")
    with pytest.raises(ValueError, match="kargs must be a string or a list"):
        load_config(str(cfg_file), workflow="to-disk", env={})

    with pytest.raises(ValueError, match="entry_kargs"):
        load_config(workflow="to-disk", env={}, overrides={"entry_kargs": {"quiet": True}})


def test_image_size_units(tmp_path) -> None:
    assert load_config(workflow="to-disk", env={}, overrides={"image_size": "15GiB"}).image_size == "15GiB"
    assert load_config(workflow="to-disk", env={}, overrides={"image_size": "15GB"}).image_size == "15GB"
    with pytest.raises(ValueError, match="Unsupported size"):
        load_config(workflow="to-disk", env={}, overrides={"image_size": "fifteen gigs"})
