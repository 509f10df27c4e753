# uconsole_image/provisioning.py
"""
Declarative provisioning of the target system.

``build_plan`` turns a BuildConfig into an ordered list of actions describing
*what* the image needs; ``Provisioner`` knows *how* to apply each action with
pacman, systemctl and friends inside arch-chroot. Every action is safe to apply
to a system that already satisfies it.
"""
import os
import shutil
from typing import Iterable, List, Literal, Union

from pydantic import BaseModel, Field, SecretStr

from uconsole_image.config.models import BuildConfig
from uconsole_image.utils.executor import Executor
from uconsole_image.utils.exceptions import ShellCommandError


# --- 1. Actions ---

class InitKeyring(BaseModel):
    kind: Literal["init_keyring"] = "init_keyring"
    keyring: str


class AddRepository(BaseModel):
    kind: Literal["add_repository"] = "add_repository"
    name: str
    server: str
    siglevel: str = "Optional"


class SystemUpgrade(BaseModel):
    kind: Literal["system_upgrade"] = "system_upgrade"


class InstallPackages(BaseModel):
    """Installs a package set; ``fallback`` is tried if it fails, ``optional`` tolerates failure."""
    kind: Literal["install_packages"] = "install_packages"
    description: str
    packages: List[str]
    fallback: List[str] = Field(default_factory=list)
    optional: bool = False


class EnableServices(BaseModel):
    kind: Literal["enable_services"] = "enable_services"
    services: List[str]


class CreateUser(BaseModel):
    kind: Literal["create_user"] = "create_user"
    name: str
    password: SecretStr
    groups: List[str] = Field(default_factory=list)
    shell: str = "/bin/bash"


class WriteFile(BaseModel):
    """Writes ``content`` to ``path`` inside the target, relative to its root."""
    kind: Literal["write_file"] = "write_file"
    path: str
    content: str
    mode: int = 0o644


class SetLocale(BaseModel):
    kind: Literal["set_locale"] = "set_locale"
    locale: str


class SetTimezone(BaseModel):
    kind: Literal["set_timezone"] = "set_timezone"
    timezone: str


class CleanPackageCache(BaseModel):
    kind: Literal["clean_package_cache"] = "clean_package_cache"


Action = Union[
    InitKeyring, AddRepository, SystemUpgrade, InstallPackages, EnableServices,
    CreateUser, WriteFile, SetLocale, SetTimezone, CleanPackageCache,
]


def install_command(packages: Iterable[str]) -> List[str]:
    """Maps a package set onto the pacman invocation that installs it."""
    return ["pacman", "-S", "--noconfirm", "--needed", *packages]


# --- 2. Plan ---

def build_plan(config: BuildConfig) -> List[Action]:
    """The ordered provisioning steps for a uConsole image."""
    pkgs = config.packages
    user = config.user
    hostname = config.system.hostname

    plan: List[Action] = [InitKeyring(keyring=pkgs.keyring)]
    if pkgs.repository:
        plan.append(AddRepository(
            name=pkgs.repository.name,
            server=pkgs.repository.server,
            siglevel=pkgs.repository.siglevel,
        ))
    plan.extend([
        SystemUpgrade(),
        InstallPackages(description="kernel", packages=pkgs.kernel),
        InstallPackages(description="WiFi support", packages=pkgs.wifi, fallback=pkgs.wifi_fallback),
        InstallPackages(description="desktop", packages=pkgs.desktop),
    ])
    if pkgs.optional:
        plan.append(InstallPackages(description="Raspberry Pi utilities", packages=pkgs.optional, optional=True))

    plan.extend([
        EnableServices(services=pkgs.services),
        CreateUser(name=user.name, password=user.password, groups=user.groups, shell=user.shell),
        WriteFile(path="/etc/sudoers.d/wheel", content="%wheel ALL=(ALL:ALL) ALL\n", mode=0o440),
    ])
    if user.passwordless_sudo:
        plan.append(WriteFile(path=f"/etc/sudoers.d/{user.name}",
                              content=f"{user.name} ALL=(ALL) NOPASSWD: ALL\n", mode=0o440))
    plan.extend([
        WriteFile(path="/etc/hostname", content=f"{hostname}\n"),
        WriteFile(path="/etc/hosts", content=(
            "127.0.0.1   localhost\n"
            "::1         localhost\n"
            f"127.0.1.1   {hostname}.localdomain {hostname}\n"
        )),
        SetLocale(locale=config.system.locale),
        SetTimezone(timezone=config.system.timezone),
        CleanPackageCache(),
    ])
    return plan


# --- 3. Executor ---

class Provisioner:
    """Applies provisioning actions to the system mounted at ``root``."""

    def __init__(self, executor: Executor, root: str):
        self.executor = executor
        self.logger = executor.logger
        self.root = root
        self.executor.chroot_path = root

    def apply(self, plan: Iterable[Action]):
        for action in plan:
            handler = getattr(self, f"_apply_{action.kind}")
            handler(action)

    def _chroot(self, description: str, command: List[str], **kwargs):
        return self.executor.run(description=description, command=command, chroot=True, **kwargs)

    def _target_path(self, path: str) -> str:
        return os.path.join(self.root, path.lstrip("/"))

    def _apply_init_keyring(self, action: InitKeyring):
        self._chroot("Initializing pacman keyring", ["pacman-key", "--init"])
        self._chroot(f"Populating {action.keyring} keyring", ["pacman-key", "--populate", action.keyring])

    def _apply_add_repository(self, action: AddRepository):
        conf = self._target_path("/etc/pacman.conf")
        with open(conf, encoding="utf-8") as f:
            if f"[{action.name}]" in f.read():
                self.logger.info(f"Repository [{action.name}] already configured")
                return
        with open(conf, "a", encoding="utf-8") as f:
            f.write(f"\n[{action.name}]\nSigLevel = {action.siglevel}\nServer = {action.server}\n")
        self.logger.info(f"Added repository [{action.name}]")

    def _apply_system_upgrade(self, action: SystemUpgrade):
        self._chroot("Updating system", ["pacman", "-Syu", "--noconfirm"])

    def _apply_install_packages(self, action: InstallPackages):
        description = f"Installing {action.description} packages"
        if not action.fallback and not action.optional:
            self._chroot(description, install_command(action.packages))
            return

        try:
            self._chroot(description, install_command(action.packages))
        except ShellCommandError as e:
            if action.fallback:
                self.logger.warning(f"{' '.join(action.packages)} failed to install ({e.stderr.strip() or e}), "
                                    f"falling back to {' '.join(action.fallback)}")
                self._chroot(f"Installing fallback {action.description} packages", install_command(action.fallback))
            else:
                self.logger.warning(f"Skipping optional {action.description} packages: {e.stderr.strip() or e}")

    def _apply_enable_services(self, action: EnableServices):
        for service in action.services:
            self._chroot(f"Enabling {service}", ["systemctl", "enable", service])

    def _apply_create_user(self, action: CreateUser):
        exit_code, _, _ = self._chroot(f"Looking up user {action.name}", ["id", "-u", action.name], check=False)
        if exit_code == 0:
            self.logger.info(f"User {action.name} already exists")
        else:
            command = ["useradd", "-m", "-s", action.shell]
            if action.groups:
                command.extend(["-G", ",".join(action.groups)])
            self._chroot(f"Creating user {action.name}", command + [action.name])

        self._chroot(f"Setting password for {action.name}", ["chpasswd"],
                     input=f"{action.name}:{action.password.get_secret_value()}\n")

    def _apply_write_file(self, action: WriteFile):
        path = self._target_path(action.path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(action.content)
        os.chmod(path, action.mode)
        self.logger.debug(f"Wrote {action.path}")

    def _apply_set_locale(self, action: SetLocale):
        charset = action.locale.split(".", 1)[1] if "." in action.locale else "UTF-8"
        self._apply_write_file(WriteFile(path="/etc/locale.gen", content=f"{action.locale} {charset}\n"))
        self._chroot(f"Generating locale {action.locale}", ["locale-gen"])
        self._apply_write_file(WriteFile(path="/etc/locale.conf", content=f"LANG={action.locale}\n"))

    def _apply_set_timezone(self, action: SetTimezone):
        self._chroot(f"Setting timezone to {action.timezone}",
                     ["ln", "-sf", f"/usr/share/zoneinfo/{action.timezone}", "/etc/localtime"])

    def _apply_clean_package_cache(self, action: CleanPackageCache):
        self._chroot("Cleaning package cache", ["pacman", "-Scc", "--noconfirm"])
        cache = self._target_path("/var/cache/pacman/pkg")
        if os.path.isdir(cache):
            for entry in os.listdir(cache):
                entry_path = os.path.join(cache, entry)
                if os.path.isdir(entry_path) and not os.path.islink(entry_path):
                    shutil.rmtree(entry_path)
                else:
                    os.remove(entry_path)
