"""``gradle-republish extract VERSION`` — extract logical artifacts into the cache."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from gradle_republish.cli.output import console, fail
from gradle_republish.config import config
from gradle_republish.core.errors import RepublishError
from gradle_republish.core.republisher import Republisher
from gradle_republish.providers.distributions import LocalDistributionSource


def extract_cmd(
    version: str = typer.Argument(..., help="Gradle version to extract."),
    artifact: Optional[list[str]] = typer.Option(
        None,
        "--artifact",
        "-a",
        help="Logical artifact (repeatable): api, test-kit, wrapper, launcher, kotlin-dsl, sources.",
    ),
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
    """Extract logical artifacts of a Gradle distribution into the local cache."""
    settings = config.model_copy(update={"cache_dir": cache_dir}) if cache_dir else config
    source = LocalDistributionSource(distributions) if distributions else None
    extractor = Republisher.from_config(settings, source=source).extractor
    try:
        descriptors = extractor.extract(version, artifact or ["api"], expected_sha256=sha256)
    except RepublishError as exc:
        raise fail(exc)

    table = Table(title=f"Extracted from Gradle {version}")
    table.add_column("Coordinates", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Fingerprint", style="dim")
    for descriptor in sorted(descriptors, key=lambda d: d.coordinates):
        table.add_row(descriptor.coordinates, f"{descriptor.size_bytes:,}", descriptor.fingerprint)
    console.print(table)
