from .step_00_preflight import PreflightStep
from .step_10_prepare_workdir import PrepareWorkdirStep
from .step_20_create_image import CreateImageStep
from .step_30_partition_fs import PartitionFilesystemStep
from .step_40_bootc_install import BootcInstallStep
from .step_50_install_bootloader import InstallBootloaderStep
from .step_60_post_install_checks import PostInstallChecksStep
from .step_90_finalize import FinalizeStep

__all__ = [
    "PreflightStep",
    "PrepareWorkdirStep",
    "CreateImageStep",
    "PartitionFilesystemStep",
    "BootcInstallStep",
    "InstallBootloaderStep",
    "PostInstallChecksStep",
    "FinalizeStep",
]
