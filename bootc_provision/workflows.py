from __future__ import annotations

from typing import List

from .config import WORKFLOW_PRESETS, InstallConfig
from .pipeline import Step
from .steps import (
    BootcInstallStep,
    CreateImageStep,
    FinalizeStep,
    InstallBootloaderStep,
    PartitionFilesystemStep,
    PostInstallChecksStep,
    PreflightStep,
    PrepareWorkdirStep,
)


def workflow_names() -> List[str]:
    return list(WORKFLOW_PRESETS)


def build_steps(cfg: InstallConfig) -> List[Step]:
    """Ordered steps for a resolved configuration.

    to-disk lets bootc partition the image through its own loop device, so
    the partition step only runs for to-filesystem workflows.
    """

    steps: List[Step] = [
        PreflightStep(),
        PrepareWorkdirStep(),
        CreateImageStep(),
    ]
    if cfg.partitions_disk:
        steps.append(PartitionFilesystemStep())
    steps.extend(
        [
            BootcInstallStep(),
            InstallBootloaderStep(),
            PostInstallChecksStep(),
            FinalizeStep(),
        ]
    )
    return steps
