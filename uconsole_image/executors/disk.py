# uconsole_image/executors/disk.py
import os
from typing import Tuple

from uconsole_image.utils.executor import Executor
from uconsole_image.utils.exceptions import LoopDeviceError


class DiskManager:
    """
    Block-device operations used while building an image: partition table,
    formatting, loop devices and mounts.
    All operations are delegated to the provided Executor instance.
    """

    def __init__(self, executor: Executor):
        """
        Initializes the Disk management class.

        Args:
            executor (Executor): An instance of the Executor class for command execution.
        """
        self.executor = executor
        self.logger = executor.logger

    # --- DISK LEVEL OPERATIONS ---

    def create_label(self, device: str, label: str = "msdos") -> Tuple[int, str, str]:
        """
        Writes a new, empty partition table to the device.

        Args:
            device (str): The disk device path (e.g., '/dev/sda', '/dev/loop0').
            label (str): The parted label type. 'msdos' is the legacy MBR table the
                         Raspberry Pi firmware boots from.

        Returns:
            Tuple[int, str, str]: (exit_code, stdout, stderr).
        """
        return self.executor.run(
            description=f"Writing {label} partition table to {device}",
            command=["parted", "-s", device, "mklabel", label],
        )

    def create_partition(self, device: str, fs_type: str, start: str, end: str) -> Tuple[int, str, str]:
        """
        Creates a primary partition with parted.

        Args:
            device (str): The disk device path.
            fs_type (str): The parted filesystem-type hint (e.g., 'fat32', 'ext4').
            start (str): Start boundary (e.g., '1MiB', '512M').
            end (str): End boundary (e.g., '512M', '100%').

        Returns:
            Tuple[int, str, str]: (exit_code, stdout, stderr).
        """
        return self.executor.run(
            description=f"Creating {fs_type} partition on {device} ({start} - {end})",
            command=["parted", "-s", device, "mkpart", "primary", fs_type, start, end],
        )

    def set_flag(self, device: str, number: int, flag: str = "boot") -> Tuple[int, str, str]:
        """Turns a partition flag on (e.g., the MBR bootable flag)."""
        return self.executor.run(
            description=f"Marking partition {number} on {device} as {flag}",
            command=["parted", "-s", device, "set", str(number), flag, "on"],
        )

    def reread_partitions(self, device: str) -> bool:
        """
        Asks the kernel to re-read the partition table.

        The request fails with 'device busy' when the kernel already picked the
        new table up, so a failure is reported as a warning and never raised.

        Returns:
            bool: True if partprobe succeeded.
        """
        exit_code, _, stderr = self.executor.run(
            description=f"Re-reading partition table of {device}",
            command=["partprobe", device],
            check=False,
        )
        if exit_code != 0:
            self.logger.warning(f"partprobe {device} exited with {exit_code}: {stderr.strip() or 'no output'}")
            return False
        return True

    # --- PARTITION LEVEL OPERATIONS ---

    def format_partition(self, partition_path: str, filesystem: str) -> Tuple[int, str, str]:
        """
        Formats a partition with a specified filesystem, overwriting any existing signature.

        Args:
            partition_path (str): The partition path (e.g., '/dev/loop0p1').
            filesystem (str): 'fat32' or 'ext4'.

        Returns:
            Tuple[int, str, str]: (exit_code, stdout, stderr).
        """
        if filesystem == "fat32":
            fs_cmd = ["mkfs.vfat", "-F32"]
        elif filesystem == "ext4":
            fs_cmd = ["mkfs.ext4", "-F"]
        else:
            raise ValueError(f"Unsupported filesystem: {filesystem}")

        fs_cmd.append(partition_path)

        return self.executor.run(
            description=f"Formatting {partition_path} as {filesystem}",
            command=fs_cmd,
        )

    def filesystem_uuid(self, partition_path: str) -> str:
        """Returns the filesystem UUID reported by blkid."""
        _, stdout, _ = self.executor.run(
            description=f"Reading filesystem UUID of {partition_path}",
            command=["blkid", "-s", "UUID", "-o", "value", partition_path],
        )
        return stdout.strip()

    # --- LOOP DEVICE OPERATIONS ---

    def create_sparse_file(self, path: str, size: str) -> Tuple[int, str, str]:
        """Creates (or resizes) a sparse file of the given size."""
        return self.executor.run(
            description=f"Creating sparse image {path} ({size})",
            command=["truncate", "-s", size, path],
        )

    def attach_loop(self, image_path: str) -> str:
        """
        Binds an image file to the first free loop device with partition scanning.

        Returns:
            str: The loop device path (e.g., '/dev/loop0').
        """
        _, stdout, _ = self.executor.run(
            description=f"Attaching {image_path} to a loop device",
            command=["losetup", "--find", "--show", "--partscan", image_path],
        )
        loop_device = stdout.strip()
        if not loop_device:
            raise LoopDeviceError(f"losetup did not return a loop device for {image_path}")
        return loop_device

    def detach_loop(self, loop_device: str, check: bool = True) -> Tuple[int, str, str]:
        """Releases a loop device."""
        return self.executor.run(
            description=f"Detaching loop device {loop_device}",
            command=["losetup", "-d", loop_device],
            check=check,
        )

    # --- MOUNT/UNMOUNT OPERATIONS ---

    def mount_partition(self, source: str, target: str, bind: bool = False) -> Tuple[int, str, str]:
        """
        Mounts a filesystem (or bind-mounts a directory) to a target directory.
        Ensures the target directory exists before attempting to mount.

        Args:
            source (str): The device or directory to mount (e.g., '/dev/loop0p2', '/proc').
            target (str): The mount point.
            bind (bool): Perform a bind mount of an existing directory tree.

        Returns:
            Tuple[int, str, str]: (exit_code, stdout, stderr) of the mount command.
        """
        os.makedirs(target, exist_ok=True)

        command = ["mount"]
        if bind:
            command.append("--bind")
        command.extend([source, target])

        return self.executor.run(
            description=f"{'Bind-mounting' if bind else 'Mounting'} {source} to {target}",
            command=command,
        )

    def unmount(self, target: str, lazy: bool = False, check: bool = True) -> Tuple[int, str, str]:
        """
        Unmounts a filesystem. With lazy=True the detach is forced and deferred
        until the mount is no longer busy (umount -lf).
        """
        command = ["umount", "-lf", target] if lazy else ["umount", target]
        return self.executor.run(
            description=f"Unmounting {target}",
            command=command,
            check=check,
        )
