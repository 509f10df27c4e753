# uconsole_image/target.py
import glob
import os
import stat
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from uconsole_image.config.models import BuildConfig
from uconsole_image.executors.disk import DiskManager
from uconsole_image.resources import BuildResources
from uconsole_image.utils.executor import Executor
from uconsole_image.utils.exceptions import ConfirmationDeclinedError

CONFIRMATION_TOKEN = "yes"


class TargetKind(str, Enum):
    BLOCK_DEVICE = "block_device"
    IMAGE_FILE = "image_file"


@dataclass(frozen=True)
class Target:
    """A resolved build target and the device the partitioner works on."""
    path: str
    kind: TargetKind
    device: str
    loop_device: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.kind is TargetKind.IMAGE_FILE


def is_block_device(path: str) -> bool:
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def resolve_target(path: str,
                   executor: Executor,
                   resources: BuildResources,
                   config: BuildConfig,
                   confirm: Callable[[str], str]) -> Target:
    """
    Turns the user supplied path into a device to partition.

    An existing block device is only used after the operator types the exact
    confirmation token; anything else raises ConfirmationDeclinedError before a
    single command runs. Any other path becomes a new sparse image file bound to
    a loop device, which is recorded in ``resources`` as soon as it exists.
    """
    logger = executor.logger
    disk = DiskManager(executor)
    logger.section("Preparing target")

    if is_block_device(path):
        logger.info(f"Target is block device: {path}")
        logger.warning(f"ALL DATA ON {path} WILL BE DESTROYED!")
        answer = confirm(f"Continue? ({CONFIRMATION_TOKEN}/no)")
        if answer != CONFIRMATION_TOKEN:
            raise ConfirmationDeclinedError(path)

        # Partitions the desktop may have auto-mounted; already unmounted is fine
        for node in sorted(glob.glob(f"{path}*")):
            exit_code, _, _ = disk.unmount(node, check=False)
            if exit_code != 0:
                logger.debug(f"{node} was not mounted")

        resources.device = path
        return Target(path=path, kind=TargetKind.BLOCK_DEVICE, device=path)

    size = config.image.image_size
    logger.info(f"Creating image file: {path} ({size})")
    disk.create_sparse_file(path, size)

    loop_device = disk.attach_loop(path)
    resources.loop_device = loop_device
    resources.device = loop_device
    logger.info(f"Loop device: {loop_device}")

    return Target(path=path, kind=TargetKind.IMAGE_FILE, device=loop_device, loop_device=loop_device)
