"""
HiveDeploy - UI Components
Standardized headers and the per-host progress display
"""

from typing import Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

LOGO = "hivedeploy"

# Color scheme
BRAND_COLOR = "cyan"
SUCCESS_COLOR = "green"
ERROR_COLOR = "red"


def show_header(
    title: str,
    subtitle: Optional[str] = None,
    node: Optional[str] = None,
    details: Optional[dict] = None,
    console: Optional[Console] = None,
):
    """
    Display a standardized HiveDeploy command header.

    Args:
        title: Main title (e.g., "Apply Local")
        subtitle: Optional subtitle line
        node: Node name (if applicable)
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Apply Local",
            node="web1",
            details={"Goal": "switch"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{LOGO}[/bold color(214)] [dim]›[/dim]"

    console.print(f"{prefix} [bold white]{escape(title)}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{escape(subtitle)}[/dim]")

    if node:
        console.print(f"{prefix} Node: [{BRAND_COLOR}]{escape(node)}[/{BRAND_COLOR}]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [{BRAND_COLOR}]{escape(str(value))}[/{BRAND_COLOR}]")

    console.print()


class ProgressHandle:
    """
    One host's line in a DeploymentProgress display.

    Only the message is updated; there is no count.
    """

    def __init__(self, progress: Progress, task_id: TaskID, label: str):
        self._progress = progress
        self._task_id = task_id
        self.label = label

    def set_message(self, message: str) -> None:
        self._progress.update(self._task_id, message=escape(message.strip()))

    def succeed(self, message: str = "Done") -> None:
        self._progress.update(
            self._task_id,
            message=f"[{SUCCESS_COLOR}]✓ {escape(message)}[/{SUCCESS_COLOR}]",
            completed=1,
        )
        self._progress.stop_task(self._task_id)

    def fail(self, message: str = "Failed") -> None:
        self._progress.update(
            self._task_id,
            message=f"[{ERROR_COLOR}]✗ {escape(message)}[/{ERROR_COLOR}]",
            completed=1,
        )
        self._progress.stop_task(self._task_id)


class DeploymentProgress:
    """
    Live multi-host progress display.

    Usage:
        with DeploymentProgress() as progress:
            handle = progress.add_host("web1")
            handle.set_message("Realizing...")
    """

    def __init__(self, console: Optional[Console] = None, transient: bool = False):
        self.progress = Progress(
            SpinnerColumn(finished_text=" "),
            TextColumn("[bold]{task.description}"),
            TextColumn("[dim]│[/dim]"),
            TextColumn("{task.fields[message]}"),
            console=console,
            transient=transient,
        )
        self._handles: Dict[str, ProgressHandle] = {}

    def add_host(self, name: str) -> ProgressHandle:
        """Add a line for a host and return its handle."""
        if name in self._handles:
            return self._handles[name]
        task_id = self.progress.add_task(escape(name), total=1, message="Waiting")
        handle = ProgressHandle(self.progress, task_id, name)
        self._handles[name] = handle
        return handle

    def start(self) -> None:
        self.progress.start()

    def stop(self) -> None:
        self.progress.stop()

    def __enter__(self) -> "DeploymentProgress":
        self.start()
        return self

    def __exit__(self, *exc) -> bool:
        self.stop()
        return False
