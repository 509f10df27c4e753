# uconsole_image/emitters.py
import os

from uconsole_image import templates
from uconsole_image.executors.disk import DiskManager
from uconsole_image.utils.executor import Executor


def write_text(path: str, content: str, mode: int = 0o644):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
    os.chmod(path, mode)


def render_cmdline(root_uuid: str) -> str:
    return templates.CMDLINE.substitute(root_uuid=root_uuid)


def render_autologin(user: str) -> str:
    return templates.AUTOLOGIN.substitute(user=user)


class ConfigEmitter:
    """
    Writes the boot and desktop configuration into the mounted image.
    Files below the user's home are handed to the user inside the chroot.
    """

    def __init__(self, executor: Executor, mount_point: str, user: str):
        self.executor = executor
        self.logger = executor.logger
        self.mount_point = mount_point
        self.user = user

    def _path(self, *parts: str) -> str:
        return os.path.join(self.mount_point, *(p.lstrip("/") for p in parts))

    @property
    def home(self) -> str:
        return f"/home/{self.user}"

    def _chown(self, path: str, recursive: bool = False):
        command = ["chown"]
        if recursive:
            command.append("-R")
        command.extend([f"{self.user}:{self.user}", path])
        self.executor.run(description=f"Handing {path} to {self.user}", command=command, chroot=True)

    def write_boot_config(self, root_partition: str):
        """config.txt for the Pi firmware and cmdline.txt pointing at the root filesystem UUID."""
        self.logger.section("Creating boot configuration")
        write_text(self._path("boot", "config.txt"), templates.BOOT_CONFIG)

        root_uuid = DiskManager(self.executor).filesystem_uuid(root_partition)
        write_text(self._path("boot", "cmdline.txt"), render_cmdline(root_uuid))
        self.logger.success(f"Boot configuration created (root UUID {root_uuid})")

    def write_sway_config(self):
        self.logger.section("Creating Sway configuration")
        write_text(self._path(self.home, ".config", "sway", "config"), templates.SWAY_CONFIG)
        self._chown(f"{self.home}/.config", recursive=True)

    def write_waybar_config(self):
        self.logger.section("Creating Waybar configuration")
        waybar_dir = self._path(self.home, ".config", "waybar")
        write_text(os.path.join(waybar_dir, "config"), templates.WAYBAR_CONFIG)
        write_text(os.path.join(waybar_dir, "style.css"), templates.WAYBAR_STYLE)
        self._chown(f"{self.home}/.config", recursive=True)

    def write_foot_config(self):
        self.logger.section("Creating Foot terminal configuration")
        write_text(self._path(self.home, ".config", "foot", "foot.ini"), templates.FOOT_CONFIG)
        self._chown(f"{self.home}/.config", recursive=True)

    def write_autologin(self):
        """Logs the user in on tty1 and starts Sway from the login shell."""
        self.logger.section("Configuring auto-login to Sway")
        write_text(self._path(self.home, ".bash_profile"), templates.BASH_PROFILE)
        write_text(
            self._path("etc", "systemd", "system", "getty@tty1.service.d", "autologin.conf"),
            render_autologin(self.user),
        )
        self._chown(f"{self.home}/.bash_profile")

    def write_all(self, root_partition: str):
        self.write_boot_config(root_partition)
        self.write_sway_config()
        self.write_waybar_config()
        self.write_foot_config()
        self.write_autologin()
