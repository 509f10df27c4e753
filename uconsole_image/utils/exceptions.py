# uconsole_image/utils/exceptions.py

# --- Shell command failures (raised by the Executor) ---

class ShellCommandError(Exception):
    """Base class for errors related to shell command execution."""

    def __init__(self, command: str, exit_code: int = -1, stdout: str = "", stderr: str = "", message: str = "Command execution failed."):
        self.command = command
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(f"{message} (Command: '{command}', Exit Code: {exit_code})")


class CommandNotFoundError(ShellCommandError):
    """Raised when the executable specified in the command cannot be found."""

    def __init__(self, command: str, stdout: str = "", stderr: str = ""):
        super().__init__(command, exit_code=127, stdout=stdout, stderr=stderr, message="Command not found.")


class CommandTimeoutError(ShellCommandError):
    """Raised when the command exceeds the execution timeout."""

    def __init__(self, command: str, timeout: float, stdout: str = "", stderr: str = ""):
        self.timeout = timeout
        super().__init__(command, exit_code=124, stdout=stdout, stderr=stderr, message=f"Command timed out after {timeout} seconds.")


class InvalidCommandError(ShellCommandError):
    """Raised when the command string/list is invalid, empty, or improperly formatted."""

    def __init__(self, command: str, message: str):
        super().__init__(command, exit_code=-2, message=message)


class PermissionDeniedError(ShellCommandError):
    """Raised when command execution fails due to permissions."""

    def __init__(self, command: str, stdout: str = "", stderr: str = ""):
        super().__init__(command, exit_code=126, stdout=stdout, stderr=stderr, message="Permission denied.")


# --- Checked build failures (reported to the operator, exit code 1) ---

class BuildError(Exception):
    """Base class for failures detected by the builder itself."""
    exit_code = 1


class RequirementError(BuildError):
    """Raised when the host lacks privileges or a required tool."""

    def __init__(self, message: str, hint: str = ""):
        self.hint = hint
        super().__init__(message)


class ConfirmationDeclinedError(BuildError):
    """Raised when the operator does not confirm a destructive write."""

    def __init__(self, device: str):
        self.device = device
        super().__init__(f"Aborted by user, {device} left untouched")


class LoopDeviceError(BuildError):
    """Raised when no loop device could be bound to the image file."""


class ConfigError(BuildError):
    """Raised when the build configuration cannot be loaded or validated."""


class DownloadError(BuildError):
    """Raised when the root filesystem archive cannot be fetched."""
