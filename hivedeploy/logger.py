"""
Logging system for HiveDeploy
Provides real-time logging to files with clean console output
"""

import re
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

from hivedeploy.constants import LOG_DATE_FORMAT, LOG_TIME_FORMAT, get_log_dir

console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class DeployLogger:
    """
    Manages logging for deployment operations
    - Writes all output to log files in real-time
    - Shows clean progress UI in console (unless verbose)
    - Captures errors with context

    Safe to share between host pipelines running on worker threads.
    """

    def __init__(
        self,
        node_name: str,
        operation: str,
        verbose: bool = False,
        log_dir: Optional[Path] = None,
    ):
        """
        Initialize logger

        Args:
            node_name: Name of the node being deployed (or 'hive')
            operation: Operation name (e.g., 'apply-local')
            verbose: If True, show all output in console
            log_dir: Root log directory (defaults to HIVEDEPLOY_LOG_DIR)
        """
        self.node_name = node_name
        self.operation = operation
        self.verbose = verbose
        self.log_file: Optional[TextIO] = None
        self.log_path: Optional[Path] = None
        self.current_step = ""
        self.has_errors = False
        self._lock = threading.RLock()

        # Structure: <log dir>/{node}/{date}/{time}_{operation}.log
        now = datetime.now()
        node_logs_dir = (log_dir or get_log_dir()) / node_name / now.strftime(LOG_DATE_FORMAT)
        node_logs_dir.mkdir(parents=True, exist_ok=True)

        self.log_path = node_logs_dir / f"{now.strftime(LOG_TIME_FORMAT)}_{operation}.log"

        # Line buffered for real-time tailing
        self.log_file = open(self.log_path, "w", buffering=1)

        self._write_log_header()

    def _write_log_header(self):
        """Write log file header"""
        header = f"""
{"=" * 80}
HiveDeploy Deployment Log
{"=" * 80}
Node: {self.node_name}
Operation: {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}

"""
        self._write(header)

    def _write(self, text: str) -> None:
        with self._lock:
            if self.log_file:
                self.log_file.write(text)
                self.log_file.flush()

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        timestamp = datetime.now().strftime("%H:%M:%S")
        self._write(f"[{timestamp}] [{level}] {message}\n")

        if self.verbose:
            if level == "ERROR":
                console.print(f"[red]{escape(message)}[/red]", highlight=False)
            elif level == "WARNING":
                console.print(f"[yellow]{escape(message)}[/yellow]", highlight=False)
            elif level == "DEBUG":
                console.print(f"[dim]{escape(message)}[/dim]", highlight=False)
            else:
                console.print(message, markup=False, highlight=False)

    def log_command(self, command: str, label: str = ""):
        """Log a command being executed"""
        prefix = f"[{label}] " if label else ""
        self.log(f"{prefix}Executing: {command}", "DEBUG")

    def log_output(self, output: str, stream: str = "stdout"):
        """
        Log command output

        Always written to the log file; shown in console only if verbose.

        Args:
            output: Command output (single line or multiline)
            stream: Stream name (e.g. 'web1:stdout')
        """
        if not output:
            return

        clean_output = ANSI_ESCAPE.sub("", output)
        self._write("".join(f"  [{stream}] {line}\n" for line in clean_output.splitlines()))

        if self.verbose:
            console.print(f"[dim]{escape(stream)}[/dim] {escape(clean_output)}", highlight=False)

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
        """
        self.has_errors = True

        error_block = f"""
{"!" * 80}
ERROR OCCURRED
{"!" * 80}
{error}
"""
        if context:
            error_block += f"\nContext: {context}\n"

        error_block += f"{'!' * 80}\n\n"
        self._write(error_block)

        if not self.verbose:
            console.print()

        console.print(f"[bold red]✗ {escape(error)}[/bold red]", highlight=False)
        if context:
            console.print(f"  [color(208)]{escape(context)}[/color(208)]", highlight=False)

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        if self.current_step and not self.verbose:
            console.print()

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if not self.verbose:
            console.print(f"[color(214)]▶[/color(214)] [white]{escape(step_name)}[/white]")

    def success(self, message: str):
        """Log a success message"""
        self.log(message, "INFO")

        if not self.verbose:
            console.print(f"  [dim]✓ {escape(message)}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if not self.verbose:
            console.print(f"  [yellow]⚠[/yellow] [dim]{escape(message)}[/dim]")

    def close(self):
        """Close log file"""
        with self._lock:
            if self.log_file:
                footer = f"""
{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if self.has_errors else "SUCCESS"}
{"=" * 80}
"""
                self.log_file.write(footer)
                self.log_file.close()
                self.log_file = None
