"""``gradle-republish publish VERSION`` / ``verify PATH``.

``publish`` extracts the requested logical artifacts, renders their POMs
and the BOM, and publishes everything into a local directory or a remote
Maven repository.  Exit code 1 means at least one artifact failed fatally
(e.g. a coordinate collision); 75 means every failure was retryable.

``verify`` re-hashes a local repository against its checksum sidecars.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from gradle_republish.cli.output import console, exit_code_for, fail
from gradle_republish.config import config
from gradle_republish.core.credentials import explicit_source
from gradle_republish.core.errors import RepublishError
from gradle_republish.core.publisher import RepositoryPublisher
from gradle_republish.core.republisher import Republisher
from gradle_republish.models.artifacts import PublishStatus
from gradle_republish.models.credentials import target_from_location
from gradle_republish.providers.distributions import LocalDistributionSource

_STATUS_STYLE = {
    PublishStatus.PUBLISHED: "green",
    PublishStatus.SKIPPED_IDENTICAL: "dim",
    PublishStatus.FAILED: "red",
}


def publish_cmd(
    version: str = typer.Argument(..., help="Gradle version to republish."),
    artifact: Optional[list[str]] = typer.Option(
        None,
        "--artifact",
        "-a",
        help="Logical artifact (repeatable): api, test-kit, wrapper, launcher, kotlin-dsl, sources.",
    ),
    repository: Optional[str] = typer.Option(
        None,
        "--repository",
        "-r",
        help="Target repository: a directory, file: URL or http(s) URL.",
    ),
    username: Optional[str] = typer.Option(None, "--username", help="Repository username."),
    password: Optional[str] = typer.Option(None, "--password", help="Repository password."),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace artifacts already published with different content."
    ),
    bom: bool = typer.Option(True, "--bom/--no-bom", help="Generate and publish the BOM."),
    cache_dir: Optional[Path] = typer.Option(
        None, "--cache-dir", help="Extraction cache root (default from config)."
    ),
    distributions: Optional[Path] = typer.Option(
        None,
        "--distributions",
        help="Directory of pre-downloaded distribution zips instead of downloading.",
    ),
    sha256: Optional[str] = typer.Option(
        None, "--sha256", help="Expected SHA-256 of the distribution zip."
    ),
) -> None:
    """Extract and publish logical artifacts of a Gradle version."""
    settings = config.model_copy(update={"cache_dir": cache_dir}) if cache_dir else config
    source = LocalDistributionSource(distributions) if distributions else None
    republisher = Republisher.from_config(settings, source=source)
    target = target_from_location(repository or settings.default_repository)

    try:
        report = republisher.republish(
            version,
            artifact or ["api"],
            target,
            credentials=explicit_source(username, password)(),
            overwrite=overwrite,
            with_bom=bom,
            expected_sha256=sha256,
        )
    except RepublishError as exc:
        raise fail(exc)

    result = report.result
    table = Table(title=f"Gradle {report.version} -> {result.target}")
    table.add_column("Coordinates", style="cyan")
    table.add_column("Status")
    table.add_column("Detail", style="dim")
    for outcome in result.outcomes:
        style = _STATUS_STYLE[outcome.status]
        table.add_row(
            outcome.descriptor.coordinates,
            f"[{style}]{outcome.status.value}[/{style}]",
            escape(outcome.reason or outcome.location or ""),
        )
    console.print(table)
    console.print(
        f"{len(result.published)} published, {len(result.skipped)} skipped, "
        f"{len(result.failed)} failed"
    )
    if not result.ok:
        raise typer.Exit(code=exit_code_for(result.retryable))


def verify_cmd(
    path: Path = typer.Argument(..., help="Root of a local Maven-layout repository."),
) -> None:
    """Re-hash every published payload and check its checksum sidecars."""
    if not path.is_dir():
        console.print(f"[bold red]Repository not found:[/bold red] {path}")
        raise typer.Exit(code=1)

    problems = RepositoryPublisher.verify(path)
    if problems:
        console.print(f"[bold red]{len(problems)} problem(s) in {path}:[/bold red]")
        for problem in problems:
            console.print(f"  [red]- {escape(problem)}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[bold green]All checksums in {path} verified.[/bold green]")
