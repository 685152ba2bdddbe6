"""``gradle-republish resolve VERSION`` / ``plan VERSION``.

``resolve`` shows the compatibility profile of a Gradle version: the JVM
feature level it needs and the runtime flags that JVM requires.  ``plan``
additionally provisions a JVM of that exact level and prints the full
execution configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel
from rich.table import Table

from gradle_republish.cli.output import console, fail
from gradle_republish.config import config
from gradle_republish.core.errors import RepublishError
from gradle_republish.core.planner import ExecutionPlanner
from gradle_republish.core.resolver import VersionCompatibilityResolver
from gradle_republish.models.versioning import GradleVersion
from gradle_republish.providers.toolchains import LocalJvmProvisioner


def resolve_cmd(
    version: str = typer.Argument(..., help="Gradle version, e.g. 8.2 or 6.0-rc-1."),
    jvm: Optional[int] = typer.Option(
        None,
        "--jvm",
        help="Also evaluate runtime flags against this execution JVM level.",
    ),
) -> None:
    """Resolve the JVM level and runtime flags for a Gradle version."""
    resolver = VersionCompatibilityResolver()
    try:
        gradle_version = GradleVersion.parse(version)
        profile = resolver.resolve(gradle_version)
    except RepublishError as exc:
        raise fail(exc)

    table = Table(title=f"Gradle {gradle_version}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Base version", profile.base_version.version)
    table.add_row("Pre-release", "yes" if gradle_version.is_prerelease else "no")
    table.add_row("JVM level", str(profile.jvm_level))
    table.add_row("Runtime flags", "\n".join(profile.runtime_flags) or "[dim]none[/dim]")
    if jvm is not None:
        flags = profile.flags_for(jvm)
        table.add_row(f"Flags on JVM {jvm}", "\n".join(flags) or "[dim]none[/dim]")
    console.print(table)


def plan_cmd(
    version: str = typer.Argument(..., help="Gradle version to plan an execution for."),
    jdk_home: Optional[list[Path]] = typer.Option(
        None,
        "--jdk-home",
        help="JDK home to consider (repeatable); searched before JAVA_HOME.",
    ),
    min_version: Optional[str] = typer.Option(
        None,
        "--min-version",
        help="Minimum testable Gradle version; report whether the gate passes.",
    ),
) -> None:
    """Provision a JVM and print the execution configuration for a Gradle version."""
    provisioner = LocalJvmProvisioner([*(jdk_home or []), *config.jdk_homes])
    planner = ExecutionPlanner(provisioner=provisioner)
    try:
        if min_version is not None:
            enabled, message = planner.check_minimum(version, min_version)
            style = "green" if enabled else "yellow"
            console.print(f"[{style}]{message}[/{style}]")
            if not enabled:
                raise typer.Exit(code=0)
        execution = planner.plan(version)
    except RepublishError as exc:
        raise fail(exc)

    lines = [
        f"[cyan]Java home:[/cyan] {execution.java_home}",
        f"[cyan]JVM level:[/cyan] {execution.jvm_level}",
        f"[cyan]JVM arguments:[/cyan] {' '.join(execution.jvm_arguments()) or '-'}",
    ]
    lines.extend(f"[cyan]env[/cyan] {key}={value}" for key, value in sorted(execution.environment.items()))
    console.print(Panel("\n".join(lines), title=f"Execution plan for Gradle {execution.gradle_version}"))
