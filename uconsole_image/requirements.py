# uconsole_image/requirements.py
import os
import platform
import shutil
from typing import Optional, Sequence

from uconsole_image.utils.logger import RichAppLogger
from uconsole_image.utils.exceptions import RequirementError

REQUIRED_COMMANDS: Sequence[str] = (
    "parted",
    "partprobe",
    "mkfs.vfat",
    "mkfs.ext4",
    "losetup",
    "truncate",
    "blkid",
    "mount",
    "umount",
    "bsdtar",
    "arch-chroot",
)

# Package that provides each command on a Debian-family host
COMMAND_HINTS = {
    "parted": "parted",
    "partprobe": "parted",
    "mkfs.vfat": "dosfstools",
    "mkfs.ext4": "e2fsprogs",
    "losetup": "util-linux",
    "truncate": "coreutils",
    "blkid": "util-linux",
    "mount": "mount",
    "umount": "mount",
    "bsdtar": "libarchive-tools",
    "arch-chroot": "arch-install-scripts",
}

NATIVE_MACHINES = ("aarch64", "arm64")
QEMU_BINARIES = ("/usr/bin/qemu-aarch64-static", "/usr/bin/qemu-aarch64")


def is_foreign_host(machine: Optional[str] = None) -> bool:
    """True when the host cannot execute aarch64 binaries natively."""
    machine = (machine or platform.machine()).lower()
    return machine not in NATIVE_MACHINES


def find_qemu_binary() -> Optional[str]:
    """Returns the first installed aarch64 user-mode emulator, if any."""
    for candidate in QEMU_BINARIES:
        if os.path.isfile(candidate):
            return candidate
    return None


def check_requirements(logger: RichAppLogger,
                       euid: Optional[int] = None,
                       machine: Optional[str] = None,
                       commands: Sequence[str] = REQUIRED_COMMANDS):
    """
    Fails fast, before anything destructive happens, if the build cannot run
    on this host. Raises RequirementError; has no side effects besides logging.
    """
    logger.section("Checking requirements")

    euid = os.geteuid() if euid is None else euid
    if euid != 0:
        raise RequirementError("This tool must be run as root", hint="Re-run it with sudo.")

    for command in commands:
        if shutil.which(command) is None:
            package = COMMAND_HINTS.get(command)
            hint = f"Install it with: apt install {package}" if package else ""
            raise RequirementError(f"Required command not found: {command}", hint=hint)
        logger.debug(f"Found required command: {command}")

    if is_foreign_host(machine):
        qemu = find_qemu_binary()
        if qemu is None:
            raise RequirementError(
                f"qemu-user-static not found - required on {machine or platform.machine()} hosts",
                hint="Install with: apt install qemu-user-static binfmt-support",
            )
        logger.debug(f"Using {qemu} for aarch64 emulation")

    logger.success("All requirements met")
