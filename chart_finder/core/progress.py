"""
Rich progress bars for the long-running phases of a run.

    - Library scan: ScanProgressBar pulses and counts songs, since the
      number of songs is only known once the scan is done.
    - Matching: MatchingProgressBar counts recommended, skipped and
      failed tracks.

The catalog fetch is a single request and has no bar.

Usage:
    with MatchingProgressBar(total=len(tracks)) as progress:
        for track in tracks:
            progress.update(recommended=True)
"""

from abc import ABC, abstractmethod

from rich import get_console
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskID, TextColumn
from rich.table import Column
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})

DESCRIPTION_WIDTH = 15
STATUS_WIDTH = 35


def _fixed_width(width: int) -> Column:
    return Column(width=width, no_wrap=True, overflow="ellipsis")


class BaseProgressBar(ABC):
    """
    A single-task Rich progress bar with a counter-driven status column.

    Subclasses render their counters in _status() and advance them in
    update(). The bar is a context manager; start() and stop() may also
    be called directly and are idempotent.
    """

    def __init__(self, total: int | None, description: str, console: Console | None = None):
        self.total = total
        self.description = description
        self.completed = 0

        self.console = console or get_console()
        self.console.push_theme(PROGRESS_THEME)

        self.progress = Progress(
            TextColumn("[white]{task.description}", table_column=_fixed_width(DESCRIPTION_WIDTH)),
            TextColumn("{task.fields[status]}", style="white", table_column=_fixed_width(STATUS_WIDTH)),
            BarColumn(bar_width=40, finished_style="green"),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            console=self.console,
            refresh_per_second=10,
        )
        self.task_id: TaskID | None = None

    def __enter__(self) -> "BaseProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    @property
    def started(self) -> bool:
        return self.task_id is not None

    def start(self) -> None:
        if self.started:
            return
        self.progress.start()
        self.task_id = self.progress.add_task(
            self.description,
            total=self.total,
            status=self._status(),
        )

    def stop(self) -> None:
        if not self.started:
            return
        self.progress.stop()
        self.task_id = None

    def log(self, message: str) -> None:
        """Print a message above the bar."""
        self.progress.console.print(message, highlight=False)

    def _refresh(self) -> None:
        if self.started:
            self.progress.update(self.task_id, completed=self.completed, status=self._status())

    @abstractmethod
    def _status(self) -> str:
        """Rich markup for the status column."""

    @abstractmethod
    def update(self, *args, **kwargs) -> None:
        """Count one finished item."""


class ScanProgressBar(BaseProgressBar):
    """
    Scanning        ♫ 1250 songs scanned   ━━━━━━━━━━━━━━━━━

    The bar itself is the scan's progress callback.
    """

    def __init__(self, description: str = "Scanning", console: Console | None = None):
        super().__init__(total=None, description=description, console=console)

    def _status(self) -> str:
        return f"[cyan]♫ {self.completed}[/cyan] songs scanned"

    def update(self) -> None:
        self.completed += 1
        self._refresh()

    __call__ = update


class MatchingProgressBar(BaseProgressBar):
    """
    Matching        ✓ 45  – 120  ✗ 2       ━━━━━━━━━━━━━━━━━  47%

    The failed counter is only shown once a track has failed.
    """

    def __init__(self, total: int, description: str = "Matching", console: Console | None = None):
        super().__init__(total=total, description=description, console=console)
        self.recommended = 0
        self.skipped = 0
        self.failed = 0

    def _status(self) -> str:
        status = f"[green]✓ {self.recommended}[/green]  [yellow]– {self.skipped}[/yellow]"
        if self.failed:
            status += f"  [red]✗ {self.failed}[/red]"
        return status

    def update(self, recommended: bool = False, failed: bool = False) -> None:
        """
        Count one processed track.

        Args:
            recommended: A chart was recommended for the track.
            failed: Matching raised for the track. A track that is
                    neither recommended nor failed counts as skipped.
        """
        self.completed += 1
        if recommended:
            self.recommended += 1
        elif failed:
            self.failed += 1
        else:
            self.skipped += 1
        self._refresh()
