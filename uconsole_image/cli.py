# uconsole_image/cli.py
from pathlib import Path
from typing import Optional

import typer
from rich.prompt import Prompt
from rich.rule import Rule

from uconsole_image import core
from uconsole_image.builder import build_image
from uconsole_image.config.models import BuildConfig
from uconsole_image.resources import install_signal_handlers
from uconsole_image.utils.executor import Executor
from uconsole_image.utils.exceptions import BuildError, RequirementError, ShellCommandError
from uconsole_image.utils.logger import RichAppLogger, initialize_app_logger

app = typer.Typer(add_completion=False, help="Build an Arch Linux ARM + Sway image for the ClockworkPi uConsole CM5.")

USAGE = """\
Usage: uconsole-image <device|image>

Examples:
  uconsole-image /dev/sdb            # Write to SD card
  uconsole-image ./uconsole-cm5.img  # Create image file
"""


def _print_next_steps(logger: RichAppLogger, config: BuildConfig, target_path: str, is_image: bool):
    console = logger.console
    console.print(Rule("[bold green]Build complete![/bold green]"))
    console.print("Default credentials:")
    console.print(f"  Username: {config.user.name}")
    console.print(f"  Password: {config.user.password.get_secret_value()}")
    console.print("")
    console.print("Sway will start automatically on boot.")
    console.print("Key bindings use Alt as the modifier key.")
    console.print("")
    console.print("First boot tips:")
    console.print("  - Connect to WiFi: nmtui")
    console.print("  - Update system: sudo pacman -Syu")
    console.print("")
    if is_image:
        console.print(f"Image created: {target_path}")
        console.print("Write to SD card with:")
        console.print(f"  sudo dd if={target_path} of=/dev/sdX bs=4M status=progress")
    else:
        console.print("SD card is ready. Insert into uConsole and boot!")


@app.command()
def build(
    target: Optional[str] = typer.Argument(None, help="Block device to overwrite, or path of a new image file."),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="TOML file overriding the default build settings."),
    log_dir: Path = typer.Option(Path("logs"), "--log-dir", help="Directory for the build log."),
):
    """
    Build a bootable uConsole SD card or image file.
    """
    if not target:
        typer.echo(USAGE, err=True)
        raise typer.Exit(code=1)

    core.app_logger = initialize_app_logger(app_name="uconsole_image", log_directory=str(log_dir))
    logger = core.app_logger
    logger.console.print(Rule("[bold]Arch Linux ARM + Sway for uConsole CM5[/bold]"))

    try:
        config = BuildConfig.load_config_from_file(config_path) if config_path else BuildConfig()
    except BuildError as e:
        logger.error(str(e))
        raise typer.Exit(code=e.exit_code)

    install_signal_handlers()
    executor = Executor(logger_instance=logger, default_timeout=None)

    def confirm(prompt: str) -> str:
        return Prompt.ask(prompt, console=logger.console, default="", show_default=False)

    try:
        result = build_image(target, config, executor, confirm)
    except RequirementError as e:
        logger.error(str(e))
        if e.hint:
            logger.info(e.hint)
        raise typer.Exit(code=e.exit_code)
    except BuildError as e:
        logger.error(str(e))
        raise typer.Exit(code=e.exit_code)
    except ShellCommandError as e:
        logger.critical(f"Build failed at command: '{e.command}'")
        if e.stderr:
            logger.critical(e.stderr.strip())
        raise typer.Exit(code=e.exit_code if e.exit_code > 0 else 1)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        raise typer.Exit(code=130)

    _print_next_steps(logger, config, target, result.is_image)


def main():
    app()
