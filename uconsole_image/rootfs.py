# uconsole_image/rootfs.py
import os
import shutil
from typing import Optional

import requests
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn, TimeElapsedColumn

from uconsole_image.config.models import BuildConfig
from uconsole_image.mounts import bind_host_filesystems
from uconsole_image.requirements import find_qemu_binary, is_foreign_host
from uconsole_image.resources import BuildResources
from uconsole_image.utils.executor import Executor
from uconsole_image.utils.exceptions import DownloadError
from uconsole_image.utils.logger import RichAppLogger

CHUNK_SIZE = 1024 * 1024


def download_rootfs(config: BuildConfig, logger: RichAppLogger) -> str:
    """
    Fetches the root filesystem archive unless a copy is already present.

    The download is streamed into ``<tarball>.part`` and renamed when complete,
    so an interrupted transfer is never mistaken for a usable archive.
    """
    tarball = config.rootfs.tarball
    logger.section("Downloading root filesystem")

    if os.path.isfile(tarball):
        logger.info(f"Using existing tarball: {tarball}")
        return tarball

    partial = f"{tarball}.part"
    logger.info(f"Fetching {config.rootfs.url}")

    try:
        with Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=logger.console,
        ) as progress:
            with requests.get(config.rootfs.url, stream=True, timeout=config.rootfs.download_timeout) as response:
                response.raise_for_status()

                total = int(response.headers.get("content-length", 0)) or None
                task = progress.add_task(f"Downloading {os.path.basename(tarball)}", total=total)

                with open(partial, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        f.write(chunk)
                        progress.update(task, advance=len(chunk))
    except requests.RequestException as e:
        if os.path.exists(partial):
            os.remove(partial)
        raise DownloadError(f"Could not download {config.rootfs.url}: {e}") from e

    os.replace(partial, tarball)
    logger.success("Rootfs ready")
    return tarball


def extract_rootfs(executor: Executor, tarball: str, mount_point: str):
    """Unpacks the archive into the mounted root, preserving permissions."""
    executor.logger.section("Extracting root filesystem")
    executor.run(
        description="Extracting Arch Linux ARM rootfs (this takes a few minutes)",
        command=["bsdtar", "-xpf", tarball, "-C", mount_point],
    )


def prepare_chroot(executor: Executor, resources: BuildResources, machine: Optional[str] = None):
    """
    Makes the mounted root usable with arch-chroot: host bind mounts, the
    aarch64 emulator on foreign hosts and the host's name resolution.
    """
    logger = executor.logger
    mount_point = resources.mount_point
    logger.section("Setting up chroot environment")

    bind_host_filesystems(executor, resources)

    if is_foreign_host(machine):
        qemu = find_qemu_binary()
        # Only the static build works inside the chroot; a dynamic one relies on binfmt's F flag
        if qemu and qemu.endswith("-static"):
            shutil.copy2(qemu, os.path.join(mount_point, "usr", "bin"))
            logger.info(f"Copied {qemu} into the target")

    resolv = os.path.join(mount_point, "etc", "resolv.conf")
    # Arch Linux ARM ships resolv.conf as a symlink into /run
    if os.path.islink(resolv):
        os.remove(resolv)
    shutil.copyfile("/etc/resolv.conf", resolv)

    executor.chroot_path = mount_point
    logger.success("Chroot environment ready")
