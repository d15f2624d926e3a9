from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .lib.container import imgref
from .lib.env import DEFAULT_IMAGE_SIZE, PATHS
from .lib.kargs import split_params
from .lib.storage import parse_size

logger = logging.getLogger(__name__)

BLS_IMAGE = "quay.io/fedora/fedora-bootc-bls:42"
UKI_IMAGE = "quay.io/fedora/fedora-bootc-uki:42"
FCOS_BLS_IMAGE = "quay.io/fedora/fedora-coreos-bls:stable"
FCOS_UKI_IMAGE = "quay.io/fedora/fedora-coreos-uki:stable"

DEBUG_KARGS = ("selinux=1", "enforcing=0", "audit=0")
SERIAL_CONSOLE_KARGS = ("console=tty0", "console=ttyS0,115000n")

# Environment variables honoured on top of the config file.
ENV_OVERRIDES = {
    "IMAGE": "image",
    "DISKIMAGE": "disk_image",
    "SYSTEMD_EFI_PATH": "systemd_efi",
    "BOOTC_BIN_PATH": "bootc_bin",
}


@dataclass(frozen=True)
class InstallConfig:
    workflow: str
    install_target: str  # to-disk|to-filesystem
    image: str = BLS_IMAGE
    disk_image: str = "test.img"
    image_size: str = DEFAULT_IMAGE_SIZE
    work_dir: str = PATHS.work_dir
    clean_work_dir: bool = False
    systemd_efi: Optional[str] = None
    bootc_bin: Optional[str] = None
    bootloader: str = "systemd"
    source_transport: str = "containers-storage"
    target_transport: Optional[str] = None
    filesystem: Optional[str] = None
    wipe: bool = False
    generic_image: bool = False
    via_loopback: bool = False
    kargs: Tuple[str, ...] = ()
    entry_kargs: Tuple[str, ...] = ()
    bls_entry: Optional[str] = None
    esp_partition: int = 1
    efi_vendor: str = "fedora"
    loader_timeout: int = 5
    remove_grub_cfg: bool = False
    host_network: bool = False
    rust_log: Optional[str] = None
    warning: Optional[str] = None
    dry_run: bool = False

    @property
    def disk_image_path(self) -> Path:
        p = Path(self.disk_image)
        if p.is_absolute():
            return p
        return Path(self.work_dir) / p

    @property
    def mnt_dir(self) -> Path:
        return Path(self.work_dir) / "mnt"

    @property
    def efi_dir(self) -> Path:
        return Path(self.work_dir) / "efi"

    @property
    def staged_efi(self) -> Path:
        return Path(self.work_dir) / "systemd-x64.efi"

    @property
    def staged_bootc(self) -> Path:
        return Path(self.work_dir) / "bootc"

    @property
    def source_imgref(self) -> str:
        return imgref(self.source_transport, self.image)

    @property
    def partitions_disk(self) -> bool:
        """to-filesystem workflows build the partition table themselves."""
        return self.install_target == "to-filesystem"

    def as_dict(self) -> Dict[str, Any]:
        d = dataclasses.asdict(self)
        d["kargs"] = list(self.kargs)
        d["entry_kargs"] = list(self.entry_kargs)
        return d

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "InstallConfig":
        names = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(raw) - names)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        values = dict(raw)
        for key in ("kargs", "entry_kargs"):
            if key in values:
                values[key] = _karg_tuple(key, values[key])
        return cls(**values)


def _karg_tuple(key: str, value: Any) -> Tuple[str, ...]:
    # A YAML scalar is a command line: "quiet" or "console=ttyS0 quiet".
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(split_params(value))
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    raise ValueError(f"{key} must be a string or a list of strings, got {type(value).__name__}")


WORKFLOW_PRESETS: Dict[str, Dict[str, Any]] = {
    "to-disk": {
        "install_target": "to-disk",
        "image": BLS_IMAGE,
        "disk_image": "test.img",
        "filesystem": "ext4",
        "wipe": True,
        "generic_image": True,
        "via_loopback": True,
        "target_transport": "docker",
        "kargs": DEBUG_KARGS,
        # bootc's to-disk layout puts the ESP second, after the BIOS boot partition.
        "esp_partition": 2,
        "remove_grub_cfg": True,
    },
    "to-disk-fcos": {
        "install_target": "to-disk",
        "image": FCOS_BLS_IMAGE,
        "disk_image": "test.img",
        "filesystem": "ext4",
        "wipe": True,
        "generic_image": True,
        "via_loopback": True,
        "target_transport": "docker",
        "kargs": DEBUG_KARGS,
        "esp_partition": 2,
        "remove_grub_cfg": True,
        "warning": "Fedora CoreOS images have no separate /boot partition; to-disk is not expected to boot yet",
    },
    "to-filesystem": {
        "install_target": "to-filesystem",
        "image": BLS_IMAGE,
        "disk_image": "test.img",
        "clean_work_dir": True,
        "source_transport": "docker",
        "host_network": True,
        "rust_log": "debug",
        "entry_kargs": SERIAL_CONSOLE_KARGS + DEBUG_KARGS,
        "bls_entry": "loader/entries/bootc-composefs-1.conf",
    },
    "to-filesystem-uki": {
        "install_target": "to-filesystem",
        "image": UKI_IMAGE,
        "disk_image": "test-filesystem-uki.img",
        "source_transport": "containers-storage",
        "host_network": True,
        "rust_log": "debug",
    },
    "to-filesystem-uki-fcos": {
        "install_target": "to-filesystem",
        "image": FCOS_UKI_IMAGE,
        "disk_image": "test-filesystem-fcos-uki.img",
        "source_transport": "containers-storage",
        "host_network": True,
        "rust_log": "debug",
    },
}


def _read_yaml(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")
    return raw


def load_config(
    path: Optional[str] = None,
    *,
    workflow: str,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> InstallConfig:
    """Resolve the install configuration.

    Precedence (lowest first): workflow preset, YAML file, environment,
    explicit overrides (CLI flags). ``None`` overrides are ignored.
    """

    if workflow not in WORKFLOW_PRESETS:
        raise ValueError(f"Unknown workflow {workflow!r}; expected one of: {', '.join(WORKFLOW_PRESETS)}")

    values: Dict[str, Any] = {"workflow": workflow}
    values.update(WORKFLOW_PRESETS[workflow])

    if path:
        file_values = _read_yaml(path)
        # A file can hold per-workflow sections next to shared keys.
        sections = file_values.pop("workflows", None) or {}
        values.update(file_values)
        values.update(sections.get(workflow) or {})

    env = os.environ if env is None else env
    for var, key in ENV_OVERRIDES.items():
        if env.get(var):
            logger.info("Using %s from environment for %s", var, key)
            values[key] = env[var]

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    values["workflow"] = workflow
    cfg = InstallConfig.from_dict(values)
    # Fail before any disk work rather than in the post-install check.
    parse_size(cfg.image_size)
    return cfg


def config_of(state: Mapping[str, Any]) -> InstallConfig:
    raw = state.get("config")
    if not raw:
        raise RuntimeError("state.config is missing; resolve the configuration first")
    return InstallConfig.from_dict(raw)
