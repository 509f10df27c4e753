import pytest
import subprocess
from unittest.mock import patch

# ======= Execute with: pytest tests/test_executor.py ========

from uconsole_image.utils.executor import (
    Executor, ShellCommandError, CommandTimeoutError,
    CommandNotFoundError, PermissionDeniedError, InvalidCommandError
)

# --- Test Helper Classes/Mocks ---

class MockCompletedProcess:
    """A mock object to simulate the return value of subprocess.run."""
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.args = []

# --- Fixtures ---

@pytest.fixture
def executor(mock_rich_logger):
    """Provides an Executor instance with the mocked logger injected."""
    return Executor(logger_instance=mock_rich_logger, default_timeout=5.0)

# ----------------------------------------------------------------------
# --- Tests for Initialization and Setup ---
# ----------------------------------------------------------------------

def test_executor_initialization(mock_rich_logger):
    """Tests if the Executor initializes correctly and stores the logger."""
    exec_instance = Executor(logger_instance=mock_rich_logger, default_timeout=10.0, chroot_path="/mnt/target")
    assert exec_instance._default_timeout == 10.0
    assert exec_instance.chroot_path == "/mnt/target"
    assert exec_instance.logger == mock_rich_logger
    mock_rich_logger.debug.assert_called()

def test_executor_initialization_invalid_timeout(mock_rich_logger):
    """Tests if initialization raises ValueError for invalid timeout."""
    with pytest.raises(ValueError, match="positive number"):
        Executor(logger_instance=mock_rich_logger, default_timeout=-1)

def test_executor_accepts_no_timeout(mock_rich_logger):
    """Package installs can run for a long time, so None disables the timeout."""
    exec_instance = Executor(logger_instance=mock_rich_logger, default_timeout=None)
    assert exec_instance._default_timeout is None

def test_chroot_path_can_be_rebound(executor):
    """The chroot path is only known once the image root is mounted."""
    executor.chroot_path = "/tmp/uconsole-abc"
    assert executor._prepare_command(["true"], chroot=True) == ["arch-chroot", "/tmp/uconsole-abc", "true"]
    with pytest.raises(ValueError):
        executor.chroot_path = ""

# ----------------------------------------------------------------------
# --- Tests for _prepare_command ---
# ----------------------------------------------------------------------

def test_prepare_command_with_chroot(executor):
    """Tests preparation of an argv list with chroot prepended."""
    executor.chroot_path = "/newroot"
    prepared = executor._prepare_command(["ls", "/etc/pacman.conf"], chroot=True)
    assert prepared == ["arch-chroot", "/newroot", "ls", "/etc/pacman.conf"]

def test_prepare_command_invalid_input(executor):
    """Tests that InvalidCommandError is raised for invalid input."""
    with pytest.raises(InvalidCommandError):
        executor._prepare_command([], chroot=False)
    with pytest.raises(InvalidCommandError):
        executor._prepare_command(None, chroot=False)
    with pytest.raises(InvalidCommandError):
        executor._prepare_command("ls -l", chroot=False)
    with pytest.raises(InvalidCommandError):
        executor._prepare_command(["ls", 123], chroot=False)

# ----------------------------------------------------------------------
# --- Tests for execute_command (Low-level) ---
# ----------------------------------------------------------------------

@patch('subprocess.run')
def test_execute_command_success(mock_run, executor):
    """Tests successful command execution (exit code 0)."""
    mock_run.return_value = MockCompletedProcess(returncode=0, stdout="/dev/loop0\n", stderr="")

    exit_code, stdout, stderr = executor.execute_command(["losetup", "--find", "--show", "img"], check=True)

    mock_run.assert_called_once()
    assert exit_code == 0
    assert stdout == "/dev/loop0\n"
    assert stderr == ""

@patch('subprocess.run')
def test_execute_command_passes_stdin(mock_run, executor):
    """chpasswd reads 'user:password' from stdin."""
    mock_run.return_value = MockCompletedProcess(returncode=0)

    executor.execute_command(["chpasswd"], input="uconsole:uconsole\n")

    assert mock_run.call_args.kwargs["input"] == "uconsole:uconsole\n"
    assert mock_run.call_args.kwargs["timeout"] == 5.0

@patch('subprocess.run')
def test_execute_command_error_no_check(mock_run, executor):
    """Tests command failure when 'check' is False (no exception raised)."""
    mock_run.return_value = MockCompletedProcess(returncode=1, stdout="", stderr="Device or resource busy")

    exit_code, stdout, stderr = executor.execute_command(["partprobe", "/dev/sdb"], check=False)

    assert exit_code == 1
    assert stderr == "Device or resource busy"
    executor.logger.error.assert_not_called()

@patch('subprocess.run')
def test_execute_command_error_shellcommanderror(mock_run, executor):
    """A non-zero exit code with check=True raises ShellCommandError carrying that exit code."""
    mock_run.return_value = MockCompletedProcess(returncode=5, stdout="Some output", stderr="Unknown failure")

    with pytest.raises(ShellCommandError) as excinfo:
        executor.execute_command(["parted", "-s", "/dev/sdb", "mklabel", "msdos"], check=True)

    assert excinfo.value.exit_code == 5
    assert excinfo.value.stderr == "Unknown failure"
    executor.logger.error.assert_called_once()

@patch('subprocess.run')
def test_execute_command_command_not_found_error(mock_run, executor):
    """Tests CommandNotFoundError detection via returncode 127 and stderr string."""
    mock_run.return_value = MockCompletedProcess(returncode=127, stdout="", stderr="bash: my_command: command not found")

    with pytest.raises(CommandNotFoundError) as excinfo:
        executor.execute_command(["my_command", "--arg"], check=True)

    assert excinfo.value.exit_code == 127
    executor.logger.error.assert_called_once()

@patch('subprocess.run')
def test_execute_command_permission_denied(mock_run, executor):
    mock_run.return_value = MockCompletedProcess(returncode=1, stderr="mount: /mnt: permission denied.")

    with pytest.raises(PermissionDeniedError):
        executor.execute_command(["mount", "/dev/sdb2", "/mnt"])

@patch('subprocess.run', side_effect=FileNotFoundError)
def test_execute_command_missing_binary(mock_run, executor):
    with pytest.raises(CommandNotFoundError):
        executor.execute_command(["bsdtar", "-xpf", "rootfs.tar.gz"])

@patch('subprocess.run', side_effect=subprocess.TimeoutExpired(cmd=["test"], timeout=5.0, output=b'', stderr=b''))
def test_execute_command_timeout_error(mock_run, executor):
    """Tests CommandTimeoutError when subprocess.TimeoutExpired is raised."""
    with pytest.raises(CommandTimeoutError) as excinfo:
        executor.execute_command(["long_running_script"])

    assert "timed out" in str(excinfo.value)
    executor.logger.warning.assert_called_once()

# ----------------------------------------------------------------------
# --- Tests for run() (High-level) ---
# ----------------------------------------------------------------------

@patch.object(Executor, 'execute_command')
def test_run_success(mock_execute_command, executor, mock_rich_logger):
    """Tests the high-level run() method on successful command execution."""
    mock_execute_command.return_value = (0, "Success!", "")

    description = "Test success"
    exit_code, stdout, stderr = executor.run(description, ["test_cmd"])

    assert exit_code == 0
    assert stdout == "Success!"
    mock_rich_logger.execution_step.assert_called_once_with(description)
    executor.logger.debug.assert_called()

@patch.object(Executor, 'execute_command')
def test_run_failure(mock_execute_command, executor, mock_rich_logger):
    """Tests the high-level run() method on command execution failure."""
    mock_execute_command.side_effect = ShellCommandError(command="test_cmd", exit_code=1, stderr="Permission denied.")

    description = "Test failure"
    with pytest.raises(ShellCommandError):
        executor.run(description, ["test_cmd"])

    mock_rich_logger.execution_step.assert_called_once_with(description)

@patch.object(Executor, 'execute_command')
def test_run_with_chroot(mock_execute_command, executor, mock_rich_logger):
    """The command passed to the low-level executor is prefixed with arch-chroot."""
    mock_execute_command.return_value = (0, "", "")

    executor.chroot_path = "/tmp/uconsole-root"
    cmd = ["pacman", "-S", "--noconfirm", "sway"]

    executor.run("Install sway", cmd, chroot=True)

    expected_command = ["arch-chroot", "/tmp/uconsole-root", "pacman", "-S", "--noconfirm", "sway"]
    mock_execute_command.assert_called_once()
    actual_command = mock_execute_command.call_args[1]['command']
    assert actual_command == expected_command

@patch.object(Executor, 'execute_command')
def test_run_forwards_check_and_input(mock_execute_command, executor):
    mock_execute_command.return_value = (1, "", "busy")

    exit_code, _, stderr = executor.run("Re-read partitions", ["partprobe", "/dev/loop0"], check=False, input="x")

    assert exit_code == 1
    assert stderr == "busy"
    kwargs = mock_execute_command.call_args[1]
    assert kwargs["check"] is False
    assert kwargs["input"] == "x"
    assert set(kwargs) == {"command", "check", "input"}

@patch.object(Executor, 'execute_command')
def test_run_rejects_shell_strings(mock_execute_command, executor, mock_rich_logger):
    """Commands are argv lists; a shell string is refused before anything runs."""
    with pytest.raises(InvalidCommandError):
        executor.run("Install sway", "pacman -S --noconfirm sway", chroot=True)

    mock_execute_command.assert_not_called()
    mock_rich_logger.execution_step.assert_not_called()
