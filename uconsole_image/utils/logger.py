import logging
import os
import sys
from contextlib import contextmanager

from rich.console import Console
from rich.text import Text
from rich.logging import RichHandler

from uconsole_image.utils.exceptions import ShellCommandError

# --- 1. Custom Log Levels and Subclassed Logger ---
# Between INFO (20) and WARNING (30): always in the build log, never shown twice on screen
SECTION_LEVEL_NUM = 25
EXECUTE_LEVEL_NUM = 26
logging.addLevelName(SECTION_LEVEL_NUM, 'SECTION')
logging.addLevelName(EXECUTE_LEVEL_NUM, 'EXECUTE')


class AppLogger(logging.Logger):
    """logging.Logger with section() and execute() for the two build levels."""

    def section(self, msg, *args, **kwargs):
        if self.isEnabledFor(SECTION_LEVEL_NUM):
            self._log(SECTION_LEVEL_NUM, msg, args, **kwargs)

    def execute(self, msg, *args, **kwargs):
        if self.isEnabledFor(EXECUTE_LEVEL_NUM):
            self._log(EXECUTE_LEVEL_NUM, msg, args, **kwargs)


logging.setLoggerClass(AppLogger)


# --- 2. File Formatter ---
class FileFormatter(logging.Formatter):
    """Column-aligned format for build.log."""

    FORMAT = '%(asctime)s - %(levelname_fixed)s - %(name_fixed)s - %(filename_fixed)s:%(lineno_fixed)s - %(message)s'

    def __init__(self):
        super().__init__(self.FORMAT)

    def format(self, record):
        record.levelname_fixed = f"{record.levelname:<9}"
        record.name_fixed = f"{record.name:<15}"
        record.filename_fixed = f"{record.filename:<20}"
        record.lineno_fixed = f"{record.lineno:<5}"
        return super().format(record)


# --- 3. RichAppLogger Wrapper ---
class RichAppLogger:
    """
    What the operator sees and what ends up in build.log.

    Build phases are announced with section(), each external command runs
    inside execution_step(), and milestones are confirmed with success().
    Lines printed here are tagged ``tui_printed`` so the RichHandler skips them.
    """

    def __init__(self, console: Console, logger: AppLogger):
        self.console = console
        self.logger: AppLogger = logger

    def section(self, message: str, *args, **kwargs):
        self.console.print(Text(f"SECTION: {message}", style="bold yellow"))
        self.logger.section(f"SECTION: {message}", *args, **kwargs)

    def success(self, message: str):
        self.console.print(f"[green]✔ [SUCCESS][/green] {message}")
        self.logger.info(f"[SUCCESS] {message}", extra={"tui_printed": True})

    @contextmanager
    def execution_step(self, message: str):
        """
        Shows a spinner while the body runs, then replaces it with a
        [COMPLETED] line. On an exception the step is marked [CRITICAL] for a
        failed command (its stderr is already logged) or [FAILED] for anything
        else, which also gets a rich traceback. The exception is re-raised.
        """
        with self.console.status(f"[bold green]...[/] [RUNNING] {message}", spinner="dots") as status:
            self.logger.execute(f"[RUNNING] {message}")
            try:
                yield status
            except Exception as e:
                self._report_failure(message, e)
                raise
            self.console.print(f"[green]✔ [COMPLETED][/green] {message}")
            self.logger.execute(f"[COMPLETED] {message}")

    def _report_failure(self, message: str, error: Exception):
        command_failed = isinstance(error, ShellCommandError)
        tag = "[CRITICAL]" if command_failed else "[FAILED]"

        self.console.print(f"[bold red]✘ {tag}[/bold red] {message}")
        self.logger.execute(f"{tag} {message}")
        self.logger.exception(f"Exception during execution step: {message}", extra={"tui_printed": True})

        if not command_failed:
            self.console.print("\n[bold red]Traceback (most recent call last):[/bold red]")
            self.console.print_exception(show_locals=True)

    # --- Pass-through to the underlying logger ---

    def info(self, message, *args, **kwargs):
        self.logger.info(message, *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self.logger.warning(message, *args, **kwargs)

    def error(self, message, *args, **kwargs):
        self.logger.error(message, *args, **kwargs)

    def debug(self, message, *args, **kwargs):
        self.logger.debug(message, *args, **kwargs)

    def critical(self, message, *args, **kwargs):
        self.logger.critical(message, *args, **kwargs)


# --- 4. Console filter ---

class ConsoleFilter(logging.Filter):
    """Drops records the wrapper already rendered, and the file-only build levels."""

    def filter(self, record):
        if record.levelno in (SECTION_LEVEL_NUM, EXECUTE_LEVEL_NUM):
            return False
        return not getattr(record, "tui_printed", False)


# --- 5. Initialization Routine ---
def initialize_app_logger(
    app_name: str,
    log_directory: str = "logs",
    log_file_name: str = "build.log",
    file_log_level: int = logging.DEBUG,
    console_log_level: int = logging.INFO,
) -> RichAppLogger:
    """
    Sets up ``<log_directory>/<log_file_name>`` (everything, DEBUG and up)
    and a RichHandler on stderr for INFO and up. Re-initializing replaces the
    previous handlers.
    """
    logger: AppLogger = logging.getLogger(app_name)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    os.makedirs(log_directory, exist_ok=True)
    file_handler = logging.FileHandler(os.path.join(log_directory, log_file_name), encoding='utf-8')
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(FileFormatter())
    logger.addHandler(file_handler)

    console = Console(file=sys.stderr, soft_wrap=True)
    console_handler = RichHandler(
        console=console,
        show_time=False,
        show_level=True,
        show_path=False,
        keywords=[],
        level=console_log_level
    )
    console_handler.addFilter(ConsoleFilter())
    logger.addHandler(console_handler)

    return RichAppLogger(console, logger)
