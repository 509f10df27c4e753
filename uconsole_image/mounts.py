# uconsole_image/mounts.py
import os
import tempfile

from uconsole_image.executors.disk import DiskManager
from uconsole_image.partitions import PartitionSet
from uconsole_image.resources import BuildResources
from uconsole_image.utils.executor import Executor

# Host trees bind-mounted into the target for arch-chroot, in mount order
HOST_BIND_MOUNTS = ("dev", "dev/pts", "proc", "sys")


def mount_partitions(executor: Executor, partitions: PartitionSet, resources: BuildResources) -> str:
    """Mounts root at a fresh temporary directory and boot beneath it. Returns the mount point."""
    logger = executor.logger
    disk = DiskManager(executor)
    logger.section("Mounting partitions")

    mount_point = tempfile.mkdtemp(prefix="uconsole-")
    resources.mount_point = mount_point

    disk.mount_partition(partitions.root, mount_point)
    resources.track_mount(mount_point)

    boot_dir = os.path.join(mount_point, "boot")
    disk.mount_partition(partitions.boot, boot_dir)
    resources.track_mount(boot_dir)

    logger.success(f"Mounted at {mount_point}")
    return mount_point


def bind_host_filesystems(executor: Executor, resources: BuildResources):
    """Bind-mounts /dev, /dev/pts, /proc and /sys of the host into the mounted target."""
    disk = DiskManager(executor)
    for relative in HOST_BIND_MOUNTS:
        target = os.path.join(resources.mount_point, relative)
        disk.mount_partition(f"/{relative}", target, bind=True)
        resources.track_mount(target)
