"""Shared console, logging setup and error-to-exit-code mapping for the CLI."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from gradle_republish.core.errors import RepublishError

console = Console()
err_console = Console(stderr=True)

EXIT_FATAL = 1
# EX_TEMPFAIL from sysexits.h: the caller may retry later
EXIT_RETRYABLE = 75


def configure_logging(level: str) -> None:
    """Route the package's stdlib logging through a Rich handler on stderr."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def exit_code_for(retryable: bool) -> int:
    return EXIT_RETRYABLE if retryable else EXIT_FATAL


def fail(exc: RepublishError) -> typer.Exit:
    """Print *exc* and return the matching ``typer.Exit`` to raise."""
    label = "Retryable error" if exc.retryable else "Error"
    console.print(f"[bold red]{label} ({type(exc).__name__}):[/bold red] {escape(str(exc))}")
    return typer.Exit(code=exit_code_for(exc.retryable))
