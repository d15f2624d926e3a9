from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

INSTALL_TARGETS = ("to-disk", "to-filesystem")


def imgref(transport: str, image: str) -> str:
    """Render a container image reference such as ``docker://quay.io/x``."""

    if transport == "docker":
        return f"docker://{image}"
    return f"{transport}:{image}"


@dataclass(frozen=True)
class Volume:
    host: str
    container: str
    options: str = ""

    def render(self) -> str:
        if self.options:
            return f"{self.host}:{self.container}:{self.options}"
        return f"{self.host}:{self.container}"


@dataclass(frozen=True)
class ContainerRun:
    """A privileged ``podman run`` able to write to host block devices."""

    image: str
    command: Tuple[str, ...] = ()
    volumes: Tuple[Volume, ...] = ()
    env: Dict[str, str] = field(default_factory=dict)
    host_network: bool = False
    engine: str = "podman"

    def argv(self) -> List[str]:
        out = [self.engine, "run", "--rm", "--privileged", "--pid=host"]
        if self.host_network:
            out.append("--net=host")
        out.extend(["--security-opt", "label=type:unconfined_t"])
        for k, v in sorted(self.env.items()):
            out.extend(["--env", f"{k}={v}"])
        for vol in self.volumes:
            out.extend(["-v", vol.render()])
        out.append(self.image)
        out.extend(self.command)
        return out


@dataclass(frozen=True)
class BootcInstall:
    """``bootc install`` invocation, rendered as argv for use inside the container."""

    target: str  # to-disk|to-filesystem
    path: str
    source_imgref: str
    bootloader: str = "systemd"
    composefs_native: bool = True
    target_imgref: Optional[str] = None
    target_transport: Optional[str] = None
    filesystem: Optional[str] = None
    wipe: bool = False
    generic_image: bool = False
    via_loopback: bool = False
    kargs: Tuple[str, ...] = ()
    binary: str = "bootc"

    def argv(self) -> List[str]:
        if self.target not in INSTALL_TARGETS:
            raise ValueError(f"Unknown bootc install target: {self.target}")
        if self.target == "to-filesystem" and (self.wipe or self.via_loopback):
            raise ValueError("--wipe and --via-loopback only apply to install to-disk")

        out = [self.binary, "install", self.target]
        if self.composefs_native:
            out.append("--composefs-native")
        out.append(f"--bootloader={self.bootloader}")
        out.extend(["--source-imgref", self.source_imgref])
        if self.target_imgref:
            out.append(f"--target-imgref={self.target_imgref}")
        if self.target_transport:
            out.append(f"--target-transport={self.target_transport}")
        if self.filesystem:
            out.append(f"--filesystem={self.filesystem}")
        if self.wipe:
            out.append("--wipe")
        if self.generic_image:
            out.append("--generic-image")
        if self.via_loopback:
            out.append("--via-loopback")
        for karg in self.kargs:
            out.extend(["--karg", karg])
        out.append(self.path)
        return out


def bootc_binary_volume(host_path: str) -> Volume:
    # Overrides the image's bootc with a locally built one.
    return Volume(host=host_path, container="/usr/bin/bootc", options="ro,Z")


def standard_volumes(extra: Sequence[Volume] = ()) -> Tuple[Volume, ...]:
    return (
        Volume("/dev", "/dev"),
        Volume("/var/lib/containers", "/var/lib/containers"),
        *extra,
    )
