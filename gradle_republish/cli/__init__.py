"""gradle-republish CLI — Typer-based command-line interface.

Provides the ``gradle-republish`` command with subcommands for resolving
compatibility profiles, planning executions, extracting distributions,
publishing to repositories and verifying published checksums.

All output uses Rich for formatted terminal display.
"""
