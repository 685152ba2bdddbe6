"""Main Typer application — imports and registers all CLI commands.

Entry point: ``gradle-republish`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

from typing import Optional

import typer

from gradle_republish.cli.commands.extract import extract_cmd
from gradle_republish.cli.commands.publish import publish_cmd, verify_cmd
from gradle_republish.cli.commands.resolve import plan_cmd, resolve_cmd
from gradle_republish.cli.output import configure_logging
from gradle_republish.config import config

app = typer.Typer(
    name="gradle-republish",
    help="gradle-republish: publish Gradle distribution APIs as Maven artifacts.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def _root(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default from GRADLE_REPUBLISH_LOG_LEVEL)."
    ),
) -> None:
    configure_logging(log_level or config.log_level)


# Register subcommands
app.command(name="resolve", help="Show the JVM level and runtime flags for a Gradle version.")(resolve_cmd)
app.command(name="plan", help="Provision a JVM and show the execution configuration.")(plan_cmd)
app.command(name="extract", help="Extract logical artifacts from a distribution.")(extract_cmd)
app.command(name="publish", help="Extract and publish artifacts to a repository.")(publish_cmd)
app.command(name="verify", help="Verify checksums of a local repository.")(verify_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
