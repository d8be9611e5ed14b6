import asyncio

import click
import simplejson as json
from loguru import logger

from loadscope.system import (
    create_default_config_file,
    default_config_path,
    list_available_configs,
    load_monitor_config,
)
from loadscope.types import (
    ConcurrentOperation,
    ConfigurationIncomplete,
    DeviceConnectionError,
    TestMetadata,
)
from loadscope.util import DEFAULT_LOGLEVEL, format_error_response, shutdown_log, start_log
from loadscope.util.check_hw import get_hw_ports


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def log_options(f):
    """Add the logging options shared by long-running commands."""
    options = [
        click.option(
            "--log-to-file/--no-log-to-file",
            "-ltf/",
            default=True,
            help="Enable/disable logging to file (default: enabled)",
        ),
        click.option(
            "--log-to-stdout/--no-log-to-stdout",
            "-lts/",
            default=False,
            help="Enable/disable console logging (default: disabled)",
        ),
        click.option(
            "--log-path",
            "-lp",
            default="",
            help="Custom path for log file (default: ~/.loadscope/loadscope.log)",
        ),
        click.option(
            "--error-log-path",
            "-elp",
            default="",
            help="Custom path for the error log (default: ~/.loadscope/error.log)",
        ),
        click.option(
            "--clear-prev-log/--no-clear-prev-log",
            "-c/",
            default=True,
            help="Clear previous log file on startup (default: enabled)",
        ),
        click.option(
            "--log-level",
            "-ll",
            default=DEFAULT_LOGLEVEL,
            help="Logging level (DEBUG, INFO, WARNING, ERROR) (default: INFO)",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _start_log(kwargs):
    start_log(
        log_to_file=kwargs.pop("log_to_file"),
        log_to_stdout=kwargs.pop("log_to_stdout"),
        log_path=kwargs.pop("log_path"),
        clear_prev=kwargs.pop("clear_prev_log"),
        log_level=kwargs.pop("log_level"),
        error_log_path=kwargs.pop("error_log_path"),
    )


@click.group()
@tree_option
def cli():
    """loadscope - load test monitor for Modbus load cells.

    - Poll a load cell and record significant readings

    - Run a simulated load cell for development

    - Manage monitor configurations
    """
    pass


@cli.command()
@click.option(
    "--config-name",
    "-n",
    default="default",
    help="Monitor configuration to use (default: default)",
)
@click.option(
    "--address",
    "-a",
    default="",
    help="Device address, overrides the configuration (e.g. COM4, 127.0.0.1:8502, mock)",
)
@click.option(
    "--duration",
    "-d",
    default=10.0,
    type=float,
    help="Seconds to poll for, 0 to run until interrupted (default: 10)",
)
@click.option(
    "--metadata",
    "-m",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file with calibration and equipment data",
)
@click.option(
    "--skip-metadata-check",
    is_flag=True,
    default=False,
    help="Start even if calibration/equipment data is incomplete",
)
@click.option("--save/--no-save", "-s/", default=False, help="Save the session")
@click.option("--project-name", "-p", default="", help="Project name for saving")
@log_options
def monitor(**kwargs):
    """Poll a load cell and print retained readings.

    Connects, starts polling, prints every retained sample and stops after
    --duration seconds. A summary table (and optionally saved json/csv)
    follows.
    """
    from loadscope.cli.monitor import run_monitor

    _start_log(kwargs)
    try:
        config = load_monitor_config(kwargs["config_name"])
    except ValueError as e:
        raise click.ClickException(str(e))
    if kwargs["address"]:
        config.address = kwargs["address"]

    metadata = None
    if kwargs["metadata"]:
        try:
            with open(kwargs["metadata"]) as f:
                metadata = TestMetadata.from_dict(json.load(f))
        except (OSError, ValueError, LookupError) as e:
            logger.debug("Bad metadata file:\n{}", format_error_response())
            raise click.ClickException(
                f"Could not read metadata from {kwargs['metadata']}: {e}"
            )

    try:
        asyncio.run(
            run_monitor(
                config,
                duration_s=kwargs["duration"],
                metadata=metadata,
                skip_metadata_check=kwargs["skip_metadata_check"],
                save=kwargs["save"],
                project_name=kwargs["project_name"],
            )
        )
    except ConfigurationIncomplete as e:
        missing = ", ".join(e.missing_fields)
        raise click.ClickException(f"{e} Missing: {missing}")
    except (DeviceConnectionError, ConcurrentOperation) as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        click.echo("Interrupted.")
    finally:
        shutdown_log()


@cli.command()
@click.option("--host", "-h", default="127.0.0.1", help="Address to bind to")
@click.option("--port", "-p", default=8502, type=int, help="TCP port (default: 8502)")
@click.option(
    "--interval", "-i", default=1.0, type=float, help="Seconds between load steps"
)
@click.option("--seed", default=None, type=int, help="Random seed for load steps")
@log_options
def simulate(**kwargs):
    """Run a simulated load cell as a Modbus TCP server.

    The load starts at 0 kg and climbs by 50-150 kg per step up to 100 t.
    """
    from loadscope.device.mock import serve_simulator

    kwargs["log_to_stdout"] = True
    _start_log(kwargs)
    try:
        asyncio.run(
            serve_simulator(
                host=kwargs["host"],
                port=kwargs["port"],
                interval_s=kwargs["interval"],
                seed=kwargs["seed"],
            )
        )
    except KeyboardInterrupt:
        click.echo("Simulator stopped.")
    finally:
        shutdown_log()


@cli.command()
def ports():
    """List all available serial ports.

    Displays information about serial/COM ports:
    - Port name (e.g. COM1, /dev/ttyUSB0)
    - Device description
    - Hardware information
    """
    ports = get_hw_ports()

    click.echo("\nAvailable serial ports:")
    click.echo("----------------------")

    if not ports:
        click.echo("No serial ports found")
        click.echo("")
        return

    for port, info in ports.items():
        click.echo(f"\nPort: {port}")
        if len(info) >= 2:
            description, hwid = info
            click.echo(f"Description: {description}")
            click.echo(f"Hardware ID: {hwid}")

    click.echo("")


@cli.group()
@tree_option
def config():
    """Manage monitor configurations."""
    pass


@config.command()
@click.option("--path", default=None, type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file")
def init(path, force):
    """Write a default monitors.ini."""
    from pathlib import Path

    path = Path(path) if path else default_config_path()
    if path.exists() and not force:
        raise click.ClickException(f"{path} exists, use --force to overwrite")
    create_default_config_file(path)
    click.echo(f"Created {path}")


@config.command(name="list")
@click.option("--path", default=None, type=click.Path(dir_okay=False))
def list_configs(path):
    """List available monitor configurations."""
    names = list_available_configs(path)

    click.echo("\nAvailable monitor configurations:")
    click.echo("--------------------------------")

    if not names:
        click.echo("No monitor configurations found")
        click.echo("")
        return

    for name in names:
        click.echo(f"  - {name}")
    click.echo("")


@config.command()
@click.argument("name", default="default")
@click.option("--path", default=None, type=click.Path(dir_okay=False))
def show(name, path):
    """Show a monitor configuration.

    NAME: Name of the configuration (default: default)
    """
    try:
        monitor_config = load_monitor_config(name, path)
    except ValueError as e:
        raise click.ClickException(str(e))
    for key, value in monitor_config.to_dict().items():
        click.echo(f"{key} = {value}")
