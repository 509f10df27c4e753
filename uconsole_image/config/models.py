# uconsole_image/config/models.py

import tomlkit
from tomlkit.exceptions import TOMLKitError
import typer
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator
from typing import List, Optional
from pathlib import Path

from uconsole_image.utils.exceptions import ConfigError

# --- 1. Sub-Models ---

SIZE_SUFFIXES = ("K", "M", "G", "T")


def _check_size(value: str) -> str:
    """Accepts sizes understood by both truncate and parted (e.g. '512M', '8G')."""
    value = value.strip()
    if not value or not value[:-1].isdigit() or value[-1].upper() not in SIZE_SUFFIXES:
        raise ValueError(f"Size must be a number followed by one of {', '.join(SIZE_SUFFIXES)}, got '{value}'")
    return value


# Image Configuration
class Image(BaseModel):
    """Geometry of the produced image and partition table."""
    image_size: str = Field("8G", description="Nominal size of a new sparse image file.")
    boot_size: str = Field("512M", description="End of the FAT boot partition.")
    settle_delay: float = Field(2.0, ge=0, description="Seconds to wait before re-reading the partition table.")
    reread_delay: float = Field(1.0, ge=0, description="Seconds to wait after re-reading the partition table.")

    @field_validator("image_size", "boot_size")
    @classmethod
    def validate_sizes(cls, value: str) -> str:
        return _check_size(value)


# Root filesystem archive
class Rootfs(BaseModel):
    """Where the base filesystem archive comes from."""
    url: str = "http://os.archlinuxarm.org/os/ArchLinuxARM-aarch64-latest.tar.gz"
    tarball: str = "ArchLinuxARM-aarch64-latest.tar.gz"
    download_timeout: float = Field(30.0, gt=0)


# System Configuration
class System(BaseModel):
    """Host identity written into the image."""
    hostname: str = "uconsole"
    locale: str = "en_US.UTF-8"
    timezone: str = "UTC"


# User Configuration
class User(BaseModel):
    """The single login user of the image."""
    name: str = "uconsole"
    password: SecretStr = SecretStr("uconsole")
    groups: List[str] = Field(default_factory=lambda: ["wheel", "video", "audio", "input"])
    shell: str = "/bin/bash"
    passwordless_sudo: bool = True


# Package repository
class Repository(BaseModel):
    """An extra pacman repository appended to pacman.conf."""
    name: str = "petercxy"
    server: str = "https://s3-cdn.angry.im/alarm-repo/$arch"
    siglevel: str = "Optional"


# Package Configuration
class Packages(BaseModel):
    """Package sets installed inside the chroot, in this order."""
    keyring: str = "archlinuxarm"
    repository: Optional[Repository] = Field(default_factory=Repository)
    kernel: List[str] = Field(default_factory=lambda: ["linux-clockworkpi-git", "linux-clockworkpi-git-headers"])
    wifi: List[str] = Field(default_factory=lambda: ["wpa_supplicant-raspberrypi-git"])
    wifi_fallback: List[str] = Field(default_factory=lambda: ["wpa_supplicant"])
    desktop: List[str] = Field(default_factory=lambda: [
        "sway", "swaylock", "swayidle", "swaybg", "waybar",
        "foot", "wofi", "mako", "grim", "slurp", "wl-clipboard",
        "xdg-desktop-portal-wlr",
        "ttf-dejavu", "noto-fonts", "ttf-font-awesome",
        "pipewire", "pipewire-pulse", "wireplumber",
        "light", "brightnessctl",
        "networkmanager", "network-manager-applet",
        "bluez", "bluez-utils",
        "polkit",
        "sudo", "vim", "nano", "htop", "neofetch",
        "git", "base-devel",
        "firefox",
    ])
    optional: List[str] = Field(default_factory=lambda: ["raspberrypi-utils"])
    services: List[str] = Field(default_factory=lambda: ["NetworkManager", "bluetooth", "sshd"])


# --- 2. Top-Level Root Model ---

class BuildConfig(BaseModel):
    """The top-level configuration model; every section falls back to the stock uConsole build."""

    image: Image = Field(default_factory=Image)
    rootfs: Rootfs = Field(default_factory=Rootfs)
    system: System = Field(default_factory=System)
    user: User = Field(default_factory=User)
    packages: Packages = Field(default_factory=Packages)

    @classmethod
    def load_config_from_file(cls, path: Path) -> 'BuildConfig':
        """Loads and validates a TOML file against the pydantic schema."""
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Error reading configuration file {path}: {e}")

        try:
            data = tomlkit.parse(content).unwrap()
        except TOMLKitError as e:
            raise ConfigError(f"Invalid TOML format in {path}: {e}")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration in {path}:\n{e}")

    def display_summary(self, target: str) -> str:
        """Generates the build plan summary logged before any destructive step."""
        s = typer.style("\nBUILD PLAN", fg=typer.colors.BLUE, bold=True) + "\n"
        s += "----------------------------------------\n"
        s += f"  Target:             {typer.style(target, fg=typer.colors.CYAN)}\n"
        s += f"  Image size:         {self.image.image_size} (image files only)\n"
        s += f"  Boot partition:     1MiB - {self.image.boot_size} (FAT32), root: remainder (ext4)\n"
        s += f"  Rootfs archive:     {self.rootfs.tarball}\n"
        s += f"  Hostname:           {self.system.hostname}\n"
        s += f"  Locale / Timezone:  {self.system.locale} / {self.system.timezone}\n"
        s += f"  User:               {self.user.name} (groups: {', '.join(self.user.groups) or 'None'})\n"

        total = len(self.packages.kernel) + len(self.packages.wifi) + len(self.packages.desktop)
        s += typer.style("\nPACKAGES", fg=typer.colors.BLUE, bold=True) + "\n"
        s += "----------------------------------------\n"
        s += f"  Packages to install: {total} (+{len(self.packages.optional)} optional)\n"
        s += f"  Services to enable:  {', '.join(self.packages.services)}\n"
        if self.packages.repository:
            s += f"  Extra repository:    [{self.packages.repository.name}] {self.packages.repository.server}\n"
        return s
