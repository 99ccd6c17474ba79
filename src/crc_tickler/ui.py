from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from crc_tickler.state_queue import SingleSlotQueue
from crc_tickler.state_snapshot import SearchSnapshot


COLORS = {
    "searching": "yellow",
    "found": "bold spring_green2",
    "exhausted": "bright_red",
    "label": "cyan",
}


def status_text(state: SearchSnapshot) -> str:
    """Status cell, colored by outcome."""
    if state.found is not None:
        return f"[{COLORS['found']}]found {escape(repr(state.found))}[/{COLORS['found']}]"
    if state.complete:
        return f"[{COLORS['exhausted']}]not found[/{COLORS['exhausted']}]"
    return f"[{COLORS['searching']}]searching…[/{COLORS['searching']}]"


def render(state: Optional[SearchSnapshot]):
    """Render the search snapshot."""
    if state is None:
        return Panel("Waiting for first update…", title="Comment Search", border_style="dim")

    ui_table = Table(
        title=f"Length {state.length} / {state.max_length}  |  {state.workers} workers  |  v{state.state_version}"
    )
    ui_table.add_column("Field", justify="right", style=COLORS["label"])
    ui_table.add_column("Value")

    ui_table.add_row("Candidates", f"{state.candidates_tried:,} / {state.candidates_total:,}")
    ui_table.add_row("Progress", f"{state.completion_percent:6.2f}%")
    ui_table.add_row("Rate", f"{state.rate:,.0f}/s")
    ui_table.add_row("Elapsed", f"{state.elapsed_ms:,} ms")
    ui_table.add_row("Status", status_text(state))
    return ui_table


def ui_loop(state_queue: SingleSlotQueue[SearchSnapshot], console: Optional[Console] = None) -> None:
    """Loop the UI until the solver closes the queue."""
    with Live(render(None), refresh_per_second=10, screen=False, console=console) as live:
        while True:
            state = state_queue.get()
            if state is None:
                break
            live.update(render(state))
