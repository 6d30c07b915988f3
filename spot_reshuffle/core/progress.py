"""
Progress bar handling for spot-reshuffle using Rich library.

Only the synchronization of the target playlist gets a progress bar:
collection is paginated and fast, while clearing and repopulating a large
playlist takes one request per 100 tracks.

Stages:
    - Clearing:    SyncProgressBar(total, "Clearing"), advanced per removed batch
    - Populating:  SyncProgressBar(total, "Populating"), advanced per added batch

Usage:
    from spot_reshuffle.core.progress import SyncProgressBar

    with SyncProgressBar(total=len(tracks), description="Populating") as progress:
        for batch in split_batches(tracks):
            await api.add_items(target.id, batch)
            progress.advance(len(batch))
"""

from typing import Optional

from rich import get_console
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
)
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(30,215,96)",  # Spotify green
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(30,215,96)",
    "progress.percentage": "white",
})


class FixedWidthColumn(ProgressColumn):
    """
    Markup column padded or cut with an ellipsis to a fixed width,
    so the bars of consecutive stages line up.
    """

    def __init__(self, text_format: str, width: int, style: StyleType = "white"):
        self.text_format = text_format
        self.width = width
        self.style = style
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(self.text_format.format(task=task), style=self.style)
        text.truncate(max_width=self.width, overflow="ellipsis", pad=True)
        return text


class SyncProgressBar:
    """
    Progress of one synchronization stage, counted in tracks.

    Displays:
    - Stage name (e.g., "Populating")
    - Status: tracks done / total, and batches sent
    - Progress bar
    - Percentage

    Example:
        Populating      ✓ 300/412  (3 batches)   ━━━━━━━━━━━━━━━━━  73%
    """

    def __init__(
        self,
        total: int,
        description: str,
        status_width: int = 30
    ):
        """
        Initialize the progress bar.

        Args:
            total: Number of tracks the stage will process.
            description: Stage name shown on the left.
            status_width: Width of the status column.
        """
        self.total = total
        self.description = description
        self.completed = 0
        self.batches = 0

        self.console = get_console()

        self.progress = Progress(
            FixedWidthColumn("{task.description}", width=15),
            FixedWidthColumn("{task.fields[status]}", width=status_width),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            refresh_per_second=8,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "SyncProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        """Start the progress bar (can be called manually)."""
        if not self._started:
            self.console.push_theme(PROGRESS_THEME)
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self._get_status_text(),
            )
            self._started = True

    def stop(self) -> None:
        """Stop the progress bar and restore the console theme."""
        if self._started:
            self.progress.stop()
            self.console.pop_theme()
            self._started = False

    def advance(self, items: int) -> None:
        """
        Record one completed batch.

        Args:
            items: Number of tracks in the batch.
        """
        self.completed += items
        self.batches += 1
        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self._get_status_text(),
            )

    def _get_status_text(self) -> str:
        return (
            f"[green]✓ {self.completed}/{self.total}[/green]  "
            f"({self.batches} batches)"
        )
