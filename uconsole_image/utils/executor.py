# uconsole_image/utils/executor.py

import subprocess
import shlex
from typing import Tuple, Optional, List

from uconsole_image.utils.logger import RichAppLogger
from uconsole_image.utils.exceptions import (
    ShellCommandError, CommandNotFoundError, CommandTimeoutError,
    InvalidCommandError, PermissionDeniedError
)

__all__ = [
    "Executor",
    "ShellCommandError",
    "CommandNotFoundError",
    "CommandTimeoutError",
    "InvalidCommandError",
    "PermissionDeniedError",
]

Result = Tuple[int, str, str]


def _as_text(stream) -> str:
    if isinstance(stream, bytes):
        return stream.decode(errors="replace")
    return stream or ""


def _failure(display: str, exit_code: int, stdout: str, stderr: str) -> ShellCommandError:
    """Picks the most specific ShellCommandError for a non-zero exit."""
    lowered = stderr.lower()
    if exit_code == 127 or "command not found" in lowered:
        return CommandNotFoundError(command=display, stdout=stdout, stderr=stderr)
    if exit_code == 126 or "permission denied" in lowered:
        return PermissionDeniedError(command=display, stdout=stdout, stderr=stderr)
    return ShellCommandError(display, exit_code, stdout, stderr, message=f"Command failed with exit code {exit_code}")


class Executor:
    """
    Runs the host and chroot commands of a build.

    Every command goes through the injected RichAppLogger, so the operator sees
    a spinner per step and the build log records the full output. Commands with
    ``chroot=True`` are prefixed with ``arch-chroot <chroot_path>``.
    """

    def __init__(self,
                 logger_instance: RichAppLogger,
                 default_timeout: Optional[float] = 60.0,
                 chroot_path: str = "/mnt"):
        self.logger = logger_instance

        if default_timeout is not None and default_timeout <= 0:
            self.logger.error("Default timeout must be a positive number or None.")
            raise ValueError("Default timeout must be a positive number or None.")

        self._default_timeout = default_timeout
        self._chroot_path = None
        self.chroot_path = chroot_path
        self.logger.debug(f"Executor ready (timeout={default_timeout}, chroot={chroot_path})")

    @property
    def chroot_path(self) -> str:
        return self._chroot_path

    @chroot_path.setter
    def chroot_path(self, path: str):
        # Rebound once the image root is mounted
        if not isinstance(path, str) or not path:
            raise ValueError("Chroot path must be a non-empty string.")
        if path != self._chroot_path:
            self.logger.debug(f"Chroot path: {path}")
        self._chroot_path = path

    def _prepare_command(self, command: List[str], chroot: bool) -> List[str]:
        """Validates an argv list and applies the arch-chroot prefix."""
        if not isinstance(command, list) or not command:
            raise InvalidCommandError(str(command), "Command must be a non-empty list of strings.")
        if not all(isinstance(arg, str) for arg in command):
            raise InvalidCommandError(str(command), "All elements in command list must be strings.")

        if chroot:
            return ["arch-chroot", self._chroot_path] + command
        return list(command)

    def execute_command(self,
                        command: List[str],
                        check: bool = True,
                        input: Optional[str] = None
                        ) -> Result:
        """
        Low-level ``subprocess.run`` wrapper returning ``(exit_code, stdout, stderr)``.

        The executor's default timeout applies (None means unbounded). With
        ``check=True`` a non-zero exit raises the matching ShellCommandError
        subclass; ``input`` is written to the command's stdin.
        """
        argv = self._prepare_command(command, chroot=False)
        display = shlex.join(argv)
        limit = self._default_timeout
        self.logger.debug(f"exec: {display} (timeout={limit}, check={check})")

        try:
            process = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=limit,
                check=False,
                input=input
            )
        except FileNotFoundError:
            self.logger.error(f"'{argv[0]}' is not installed or not on PATH")
            raise CommandNotFoundError(command=display, stderr=f"{argv[0]}: not found")
        except subprocess.TimeoutExpired as e:
            self.logger.warning(f"'{display}' timed out after {limit} seconds")
            raise CommandTimeoutError(command=display, timeout=limit,
                                      stdout=_as_text(e.stdout), stderr=_as_text(e.stderr))
        except (TypeError, ValueError) as e:
            self.logger.error(f"Could not start '{display}': {e}")
            raise InvalidCommandError(display, f"Argument error in command execution: {e}")

        stdout = _as_text(process.stdout)
        stderr = _as_text(process.stderr)
        exit_code = process.returncode

        if check and exit_code != 0:
            self.logger.error(f"'{display}' exited with {exit_code}: {stderr.strip()}")
            raise _failure(display, exit_code, stdout, stderr)

        return exit_code, stdout, stderr

    def run(self,
            description: str,
            command: List[str],
            chroot: bool = False,
            check: bool = True,
            input: Optional[str] = None
            ) -> Result:
        """
        Runs one build step: ``description`` is what the operator sees next to
        the spinner, failures are reported by the execution step and re-raised.
        """
        argv = self._prepare_command(command, chroot=chroot)

        with self.logger.execution_step(description):
            exit_code, stdout, stderr = self.execute_command(
                command=argv,
                check=check,
                input=input
            )

            if stdout.strip():
                self.logger.debug(f"  stdout:\n{stdout.strip()}")
            if stderr.strip():
                self.logger.debug(f"  stderr:\n{stderr.strip()}")

            return exit_code, stdout, stderr
