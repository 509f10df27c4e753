import io
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from uconsole_image.utils.executor import Executor, ShellCommandError
from uconsole_image.utils.logger import RichAppLogger


# --- Test Helper Classes/Mocks ---

class FakeShell:
    """
    Stands in for Executor.execute_command: records every command and answers
    from scripted responses instead of running anything on the host.

    Commands run through arch-chroot are matched without the
    'arch-chroot <root>' prefix.
    """

    def __init__(self):
        self.commands = []
        self._responses = []

    @staticmethod
    def _strip_chroot(command):
        if command and command[0] == "arch-chroot":
            return command[2:]
        return command

    def respond(self, *prefix, exit_code=0, stdout="", stderr="", error=None, action=None):
        """Scripts the result of every command starting with ``prefix``. Later calls win."""
        self._responses.insert(0, (list(prefix), exit_code, stdout, stderr, error, action))

    def __call__(self, command, check=True, input=None):
        command = list(command)
        self.commands.append(command)
        stripped = self._strip_chroot(command)

        for prefix, exit_code, stdout, stderr, error, action in self._responses:
            if stripped[:len(prefix)] == prefix:
                if action:
                    action(stripped, input)
                if error:
                    raise error
                if check and exit_code != 0:
                    raise ShellCommandError(" ".join(command), exit_code, stdout, stderr)
                return exit_code, stdout, stderr
        return 0, "", ""

    def find(self, *prefix):
        """All recorded commands (chroot prefix removed) starting with ``prefix``."""
        prefix = list(prefix)
        return [self._strip_chroot(c) for c in self.commands if self._strip_chroot(c)[:len(prefix)] == prefix]

    @property
    def programs(self):
        return [self._strip_chroot(c)[0] for c in self.commands]


# --- Fixtures ---

@pytest.fixture
def mock_rich_logger():
    """Provides a fully-mocked RichAppLogger instance for dependency injection."""
    mock_logger = MagicMock(spec=RichAppLogger)

    # execution_step must behave as a context manager that never swallows exceptions
    mock_context_manager = MagicMock()
    mock_context_manager.__enter__.return_value = None
    mock_context_manager.__exit__.return_value = None
    mock_logger.execution_step.return_value = mock_context_manager

    mock_logger.console = Console(file=io.StringIO(), width=100)
    return mock_logger


@pytest.fixture
def shell():
    return FakeShell()


@pytest.fixture
def executor(mock_rich_logger, shell, monkeypatch):
    """A real Executor whose low-level execution is replaced by the FakeShell."""
    exe = Executor(logger_instance=mock_rich_logger, default_timeout=None)
    monkeypatch.setattr(exe, "execute_command", shell)
    return exe
