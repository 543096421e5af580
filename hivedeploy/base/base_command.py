"""
Base Command Class

Abstract base for all HiveDeploy CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from hivedeploy.constants import EXIT_FAILURE, EXIT_INTERRUPTED
from hivedeploy.exceptions import HiveDeployError
from hivedeploy.logger import DeployLogger
from hivedeploy.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling with per-error exit codes
    - Consistent structure
    """

    def __init__(self, verbose: bool = False, log_dir: Optional[Path] = None):
        self.verbose = verbose
        self.log_dir = log_dir
        self.console = Console()
        self.logger: Optional[DeployLogger] = None

    def init_logger(self, node_name: str, command_name: str) -> DeployLogger:
        """
        Initialize command logger.

        Args:
            node_name: Node name (use "hive" for commands without a node)
            command_name: Command name
        """
        self.logger = DeployLogger(node_name, command_name, verbose=self.verbose, log_dir=self.log_dir)
        return self.logger

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        node: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skipped in verbose mode)."""
        if not self.verbose:
            show_header(
                title=title,
                subtitle=subtitle,
                node=node,
                details=details,
                console=self.console,
            )

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {escape(message)}[/red]")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠ {escape(message)}[/yellow]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{escape(message)}[/dim]")

    def handle_error(self, error: Exception, context: Optional[str] = None) -> None:
        """
        Handle error with consistent formatting.

        Args:
            error: Exception object
            context: Optional context message
        """
        if isinstance(error, HiveDeployError):
            message, context = error.message, context or error.context
        else:
            message = f"{type(error).__name__}: {error}"

        if self.logger:
            self.logger.log_error(message, context=context)
        else:
            self.print_error(message)
            if context:
                self.print_dim(f"Context: {context}")

    def _show_log_path(self) -> None:
        if self.logger:
            self.console.print(f"[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        HiveDeployError subclasses exit with their own exit code.

        Args:
            **kwargs: Command arguments
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            self._show_log_path()
            raise SystemExit(EXIT_INTERRUPTED)
        except SystemExit:
            raise
        except HiveDeployError as e:
            self.handle_error(e)
            self._show_log_path()
            raise SystemExit(e.exit_code)
        except PermissionError as e:
            self.handle_error(e, context="Try running with --sudo")
            self._show_log_path()
            raise SystemExit(EXIT_FAILURE)
        except Exception as e:
            self.handle_error(e)
            self._show_log_path()
            raise SystemExit(EXIT_FAILURE)
        finally:
            if self.logger:
                self.logger.close()
