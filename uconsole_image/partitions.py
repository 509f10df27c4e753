# uconsole_image/partitions.py
import time
from dataclasses import dataclass

from uconsole_image.config.models import BuildConfig
from uconsole_image.executors.disk import DiskManager
from uconsole_image.utils.executor import Executor

# Kernel names that end in a digit, whose partitions are separated by 'p'
PARTITION_SEPARATOR_MARKERS = ("loop", "nvme", "mmcblk")

BOOT_START = "1MiB"


@dataclass(frozen=True)
class PartitionSet:
    boot: str
    root: str


def partition_suffix(device: str, number: int) -> str:
    """
    Suffix appended to a device path to name its ``number``-th partition.

    >>> partition_suffix("/dev/loop0", 1)
    'p1'
    >>> partition_suffix("/dev/sdb", 2)
    '2'
    """
    if any(marker in device for marker in PARTITION_SEPARATOR_MARKERS):
        return f"p{number}"
    return str(number)


def partition_path(device: str, number: int) -> str:
    return f"{device}{partition_suffix(device, number)}"


def partition_set(device: str) -> PartitionSet:
    return PartitionSet(boot=partition_path(device, 1), root=partition_path(device, 2))


def partition_device(executor: Executor, device: str, config: BuildConfig, sleep=time.sleep) -> PartitionSet:
    """
    Writes the boot + root layout to ``device`` and formats both partitions.

    The sequence is not rolled back on failure; a failing command propagates
    and the caller's teardown releases whatever was acquired.
    """
    logger = executor.logger
    disk = DiskManager(executor)
    boot_size = config.image.boot_size

    logger.section("Partitioning device")

    disk.create_label(device, "msdos")
    disk.create_partition(device, "fat32", BOOT_START, boot_size)
    disk.set_flag(device, 1, "boot")
    disk.create_partition(device, "ext4", boot_size, "100%")

    # Give udev time to create the partition nodes before and after re-probing
    sleep(config.image.settle_delay)
    disk.reread_partitions(device)
    sleep(config.image.reread_delay)

    partitions = partition_set(device)
    logger.info(f"Boot partition: {partitions.boot}")
    logger.info(f"Root partition: {partitions.root}")

    logger.info("Formatting partitions...")
    disk.format_partition(partitions.boot, "fat32")
    disk.format_partition(partitions.root, "ext4")

    logger.success("Partitioning complete")
    return partitions
