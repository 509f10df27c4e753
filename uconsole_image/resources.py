# uconsole_image/resources.py
"""
Tracks everything a build acquires (loop device, mount point, mounts) so a
single teardown can release it on every exit path.
"""
import os
import signal
from dataclasses import dataclass, field
from typing import List, Optional

from uconsole_image.executors.disk import DiskManager
from uconsole_image.utils.executor import Executor
from uconsole_image.utils.exceptions import ShellCommandError


@dataclass
class BuildResources:
    """Resources owned by one build run, released in reverse order of acquisition."""

    device: Optional[str] = None
    loop_device: Optional[str] = None
    mount_point: Optional[str] = None
    mounts: List[str] = field(default_factory=list)
    torn_down: bool = False

    def track_mount(self, path: str):
        self.mounts.append(path)

    def teardown(self, executor: Executor):
        """
        Best-effort release of every tracked resource. Never raises.

        Order: mounts in reverse (sys, proc, dev/pts, dev, boot, root), then the
        loop device, then the empty mount point directory. Each step checks the
        resource still exists, so calling this with nothing acquired, or twice,
        is a no-op.
        """
        logger = executor.logger
        disk = DiskManager(executor)
        logger.info("Cleaning up...")

        while self.mounts:
            path = self.mounts.pop()
            if not os.path.ismount(path):
                logger.debug(f"{path} is not mounted, skipping")
                continue
            try:
                disk.unmount(path, lazy=True, check=False)
            except ShellCommandError as e:
                logger.warning(f"Could not unmount {path}: {e}")

        if self.loop_device and os.path.exists(self.loop_device):
            try:
                disk.detach_loop(self.loop_device, check=False)
            except ShellCommandError as e:
                logger.warning(f"Could not detach {self.loop_device}: {e}")
        self.loop_device = None

        if self.mount_point and os.path.isdir(self.mount_point):
            try:
                os.rmdir(self.mount_point)
            except OSError as e:
                logger.warning(f"Leaving mount point {self.mount_point} in place: {e}")
            else:
                self.mount_point = None

        self.torn_down = True


def _raise_system_exit(signum, frame):
    raise SystemExit(128 + signum)


def install_signal_handlers():
    """
    Turns SIGTERM and SIGHUP into SystemExit so the build's finally clause
    (and with it the teardown) runs on external interruption. SIGINT already
    raises KeyboardInterrupt.
    """
    for signum in (signal.SIGTERM, signal.SIGHUP):
        signal.signal(signum, _raise_system_exit)
