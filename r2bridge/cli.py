#!/usr/bin/env python3
"""
r2bridge CLI - run radare2 commands from the shell

Examples:
    r2bridge /bin/ls -c "i" -c "pd 5 @ entry0"
    r2bridge /bin/ls -j -c ij
    r2bridge malloc://256          # interactive prompt
    r2bridge -t native /bin/ls -c iS
"""

import sys
from typing import Any

import click
from rich.console import Console
from rich.markup import escape

from .config import load_config
from .context import OPENERS
from .core.r2_session import R2Session
from .errors import CapabilityError, DecodeError, R2BridgeError, StreamError
from .utils.logger import configure_logging_levels, setup_logger

console = Console()
err_console = Console(stderr=True)

EXIT_COMMANDS = {"q", "quit", "exit"}


def print_event(session: R2Session, event_name: str, user_data: Any, text: str) -> bool:
    """Echo side channel text to stderr and keep the subscription alive."""
    err_console.print(f"[yellow]{escape(event_name)}:[/yellow] {escape(text.rstrip())}", highlight=False)
    return True


def run_command(session: R2Session, command: str, as_json: bool) -> None:
    """
    Run one command and print its result.

    Raises:
        StreamError: If the transport failed; the session must not be reused
    """
    if not as_json:
        output = session.cmd(command)
        if output:
            click.echo(output)
        return

    try:
        data = session.cmdj(command)
    except DecodeError as e:
        err_console.print(f"[yellow]Warning: {escape(str(e))}[/yellow]")
        if e.response:
            click.echo(e.response)
        return
    console.print_json(data=data)


def run_interactive(session: R2Session, as_json: bool) -> None:
    """Read commands from the terminal until EOF or a quit command."""
    console.print(f"[bold blue]r2bridge[/bold blue] attached to [cyan]{session.target or '<inherited>'}[/cyan]")
    console.print("Type radare2 commands; 'q' to exit.")
    while True:
        try:
            line = console.input("[bold green]r2>[/bold green] ")
        except (EOFError, KeyboardInterrupt):
            console.print()
            return
        command = line.strip()
        if not command:
            continue
        if command in EXIT_COMMANDS:
            return
        run_command(session, command, as_json)


@click.command()
@click.argument("target", required=False, default="")
@click.option("-c", "--command", "commands", multiple=True, help="Command to run (repeatable)")
@click.option("-j", "--json", "as_json", is_flag=True, help="Decode output as JSON and pretty print it")
@click.option(
    "-t",
    "--transport",
    type=click.Choice(sorted(OPENERS)),
    default="pipe",
    show_default=True,
    help="How to reach radare2",
)
@click.option("--force", is_flag=True, help="Quit with 'q!' instead of 'q'")
@click.option("--stderr", "watch_stderr", is_flag=True, help="Print radare2 stderr messages as they arrive")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.option("-q", "--quiet", is_flag=True, help="Only report errors")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="JSON config file")
def main(
    target: str,
    commands: tuple[str, ...],
    as_json: bool,
    transport: str,
    force: bool,
    watch_stderr: bool,
    verbose: bool,
    quiet: bool,
    config_path: str | None,
) -> None:
    """r2bridge - drive radare2 over its pipe protocol or libr_core.

    TARGET is a file path or URI (e.g. malloc://256). Leave it out when
    running inside radare2 to use the R2PIPE_IN/R2PIPE_OUT descriptors.
    """
    setup_logger(log_to_file=False)
    configure_logging_levels(verbose, quiet)

    try:
        config = load_config(config_path)
    except (TypeError, ValueError) as e:
        err_console.print(f"[red]Error: invalid configuration: {escape(str(e))}[/red]")
        sys.exit(2)

    try:
        session = OPENERS[transport](target, config)
    except R2BridgeError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    exit_code = 0
    try:
        if watch_stderr:
            try:
                session.on("stderr", None, print_event)
            except (CapabilityError, OSError) as e:
                err_console.print(f"[yellow]Warning: stderr channel unavailable: {escape(str(e))}[/yellow]")

        if commands:
            for command in commands:
                run_command(session, command, as_json)
        else:
            run_interactive(session, as_json)
    except StreamError as e:
        err_console.print(f"[red]Error: connection to radare2 lost: {escape(str(e))}[/red]")
        exit_code = 1
    finally:
        try:
            if force:
                session.force_close()
            else:
                session.close()
        except R2BridgeError as e:
            err_console.print(f"[red]Error closing session: {escape(str(e))}[/red]")
            exit_code = exit_code or 1

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
