"""Compatibility models — threshold tables, profiles and launch configurations."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from gradle_republish.models.versioning import GradleVersion


class JvmThreshold(BaseModel):
    """One row of the JVM table: base Gradle version >= ``min_gradle_version`` needs ``jvm_level``."""

    model_config = ConfigDict(frozen=True)

    min_gradle_version: GradleVersion
    jvm_level: int


class RuntimeFlagRule(BaseModel):
    """A runtime flag gated by the feature level of the *execution* JVM."""

    model_config = ConfigDict(frozen=True)

    flag: str
    min_jvm_level: int
    reason: str = ""

    def applies_to(self, jvm_level: int) -> bool:
        return jvm_level >= self.min_jvm_level


class CompatibilityProfile(BaseModel):
    """Derived compatibility facts for one base Gradle version.

    ``runtime_flags`` are the flags for ``jvm_level`` itself.  Callers that
    execute on a different JVM (e.g. a newer installation) must use
    :meth:`flags_for` with that JVM's actual level.
    """

    model_config = ConfigDict(frozen=True)

    base_version: GradleVersion
    jvm_level: int
    runtime_flags: tuple[str, ...] = ()
    flag_rules: tuple[RuntimeFlagRule, ...] = ()

    def flags_for(self, jvm_level: int) -> tuple[str, ...]:
        """Evaluate the flag rules against an execution JVM level, in table order."""
        return tuple(rule.flag for rule in self.flag_rules if rule.applies_to(jvm_level))


class ExecutionConfig(BaseModel):
    """A launchable configuration for exercising artifacts of one Gradle version."""

    model_config = ConfigDict(frozen=True)

    gradle_version: str
    jvm_level: int
    runtime_flags: tuple[str, ...] = ()
    java_home: Path | None = None
    enable_assertions: bool = True
    environment: dict[str, str] = Field(default_factory=dict)

    @property
    def java_executable(self) -> Path | None:
        if self.java_home is None:
            return None
        return self.java_home / "bin" / "java"

    def jvm_arguments(self) -> list[str]:
        """Return JVM arguments in a stable order: assertions first, then runtime flags."""
        args: list[str] = []
        if self.enable_assertions:
            args.append("-ea")
        args.extend(self.runtime_flags)
        return args
