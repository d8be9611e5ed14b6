"""Headless monitoring session printed to the terminal with rich."""

from __future__ import annotations

import asyncio

from loguru import logger
from rich.console import Console
from rich.table import Table

from loadscope.session import Sample, SessionController, SessionObserver
from loadscope.system import MonitorConfig
from loadscope.types import STATUS_LEVEL, StatusUpdate, TestMetadata
from loadscope.util.save import save_session

STATUS_STYLE = {
    STATUS_LEVEL.INFO: "cyan",
    STATUS_LEVEL.SUCCESS: "green",
    STATUS_LEVEL.WARNING: "yellow",
    STATUS_LEVEL.ERROR: "bold red",
}


class ConsoleObserver(SessionObserver):
    def __init__(self, console: Console):
        self.console = console

    def on_sample_retained(self, sample: Sample, peak: float):
        self.console.print(
            f"{sample.timestamp}  {sample.load_tons:10.3f} t  "
            f"{sample.load_kn:10.2f} kN   peak {peak:.3f} t"
        )

    def on_status(self, status: StatusUpdate):
        style = STATUS_STYLE.get(status.level, "white")
        self.console.print(f"[{style}]{status.text}[/{style}]")


def print_summary(controller: SessionController, console: Console):
    table = Table(title="Retained samples")
    table.add_column("Time")
    table.add_column("Load (t)", justify="right")
    table.add_column("Load (kN)", justify="right")
    for row in controller.table_rows():
        table.add_row(*row)
    console.print(table)
    console.print(
        f"Peak: [bold]{controller.get_peak():.3f} t[/bold] "
        f"({len(controller.get_current_buffer())} samples)"
    )


async def run_monitor(
    config: MonitorConfig,
    duration_s: float = 10.0,
    metadata: TestMetadata | None = None,
    skip_metadata_check: bool = False,
    save: bool = False,
    project_name: str = "",
    console: Console | None = None,
) -> SessionController:
    """Connect, poll for `duration_s` seconds (forever if <= 0), then stop.

    Raises whatever `connect`/`start` raise; the device is always released.
    """
    console = console or Console()
    controller = SessionController(
        config,
        observers=[ConsoleObserver(console)],
        is_configuration_complete=(lambda: True) if skip_metadata_check else None,
    )
    if metadata is not None:
        controller.state.metadata = metadata
    try:
        await controller.connect()
        await controller.start()
        if duration_s > 0:
            await asyncio.sleep(duration_s)
        else:
            await asyncio.Event().wait()
    finally:
        controller.stop()
        if controller.get_current_buffer():
            print_summary(controller, console)
            if save:
                path = save_session(
                    controller.get_current_buffer(),
                    controller.get_peak(),
                    config.save_dir,
                    project_name=project_name,
                    metadata=controller.state.metadata,
                )
                console.print(f"Saved to {path}")
        await controller.aclose()
        logger.info("Monitor session finished.")
    return controller
