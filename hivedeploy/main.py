#!/usr/bin/env python3
"""HiveDeploy CLI - Main entry point"""

import functools
import os
import sys

from rich.console import Console

# Rich-Click: CLI help with colors
import rich_click as click
from click.exceptions import Abort, ClickException, UsageError
from rich.markup import escape

from hivedeploy import __version__
from hivedeploy.commands.apply_local import apply_local
from hivedeploy.constants import EXIT_FAILURE, EXIT_INTERRUPTED, get_config_path

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = False
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

# COMMANDS / OPTIONS
click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_ARGUMENT = "bold yellow"

# HEADERS / USAGE
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold cyan"
click.rich_click.STYLE_HELPTEXT_FIRST_LINE = "bold white"
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"

# PANEL BORDERS
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"

console = Console()

BANNER = """
[bold cyan]╔═══════════════════════════════════════════════════════════╗[/bold cyan]
[bold cyan]║[/bold cyan]  [bold white]HiveDeploy[/bold white] - NixOS fleet deployment                  [bold cyan]║[/bold cyan]
[bold cyan]╚═══════════════════════════════════════════════════════════╝[/bold cyan]
"""


def handle_cli_errors(func):
    """Decorator to handle CLI errors gracefully."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UsageError as e:
            console.print(f"\n[bold red]✗ Error:[/bold red] {escape(e.format_message())}\n", highlight=False)
            if e.ctx and e.ctx.command:
                console.print(
                    f"[dim]Run[/dim] [cyan]hivedeploy {e.ctx.command.name} --help[/cyan] [dim]for usage information[/dim]\n"
                )
            sys.exit(e.exit_code)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except (KeyboardInterrupt, Abort):
            console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(EXIT_INTERRUPTED)
        except Exception as e:
            console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {escape(str(e))}\n", highlight=False)
            console.print("[dim]If this persists, please report this issue.[/dim]\n")

            if os.environ.get("DEBUG") or os.environ.get("VERBOSE"):
                import traceback

                console.print("[dim]Traceback:[/dim]")
                traceback.print_exc()
            sys.exit(EXIT_FAILURE)

    return wrapper


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-f",
    "config",
    default=None,
    metavar="PATH",
    help="Path to the evaluated hive manifest [default: $HIVEDEPLOY_CONFIG or hive.yml]",
)
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.pass_context
def cli(ctx: click.Context, config, verbose) -> None:
    """
    HiveDeploy - Apply NixOS configurations to the machines of a hive.

    \b
    Quick Start:
      hivedeploy apply-local              # Switch this machine
      hivedeploy apply-local --sudo       # ...escalating with sudo
      hivedeploy apply-local boot         # Activate on next boot
      hivedeploy -f fleet.yml apply-local test --node web1
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config or get_config_path()
    ctx.obj["verbose"] = verbose

    if ctx.invoked_subcommand is None:
        console.print(BANNER)
        console.print("[yellow]Run 'hivedeploy --help' for usage[/yellow]\n")


cli.add_command(apply_local)


@handle_cli_errors
def main():
    """Main entry point with error handling."""
    cli(standalone_mode=False)


if __name__ == "__main__":
    main()
