from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Sequence

from .kargs import Cmdline

logger = logging.getLogger(__name__)


def install_systemd_boot(
    *,
    esp_root: str,
    efi_binary: str,
    vendor: str = "fedora",
    timeout: int = 5,
    remove_grub_cfg: bool = False,
    dry_run: bool = False,
) -> None:
    """Place systemd-boot on an ESP populated by bootc.

    The shim chain loads ``EFI/<vendor>/grubx64.efi``, so systemd-boot is
    copied over that path rather than registered as a new boot entry.
    """

    esp = Path(esp_root)
    vendor_dir = esp / "EFI" / vendor
    loader_conf = esp / "loader" / "loader.conf"

    if dry_run:
        logger.info("Would copy %s -> %s", efi_binary, vendor_dir / "grubx64.efi")
        logger.info("Would write %s", loader_conf)
        return

    vendor_dir.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(efi_binary, vendor_dir / "grubx64.efi")

    loader_conf.parent.mkdir(parents=True, exist_ok=True)
    loader_conf.write_text(f"timeout {timeout}\n", encoding="utf-8")

    if remove_grub_cfg:
        grub_cfg = vendor_dir / "grub.cfg"
        if grub_cfg.exists():
            grub_cfg.unlink()
            logger.info("Removed %s", grub_cfg)

    logger.info("systemd-boot installed on %s (vendor=%s)", esp_root, vendor)


def edit_bls_options(entry_path: str, kargs: Sequence[str], *, dry_run: bool = False) -> str:
    """Prepend kernel arguments to the ``options`` line of a BLS entry.

    Returns the new options value.
    """

    p = Path(entry_path)
    if dry_run and not p.exists():
        logger.info("Would add kargs %s to %s", " ".join(kargs), entry_path)
        return " ".join(kargs)
    if not p.exists():
        raise RuntimeError(f"Boot entry not found: {entry_path}")

    lines = p.read_text(encoding="utf-8").splitlines()
    new_options = None
    for i, line in enumerate(lines):
        key, _, rest = line.partition(" ")
        if key == "options":
            new_options = str(Cmdline(rest).prepend(kargs))
            lines[i] = f"options {new_options}"
            break

    if new_options is None:
        raise RuntimeError(f"No options line in boot entry: {entry_path}")

    if dry_run:
        logger.info("Would set options in %s: %s", entry_path, new_options)
    else:
        p.write_text("\n".join(lines) + "\n", encoding="utf-8")
        logger.info("Updated %s options: %s", entry_path, new_options)
    return new_options
