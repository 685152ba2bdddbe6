"""Extraction rule table — logical artifact names to distribution paths.

A Gradle distribution zip unpacks to ``gradle-<version>/`` containing
``lib/`` (core jars and third-party libraries), ``lib/plugins/`` (plugin
jars) and, for ``-all`` distributions, ``src/<module>/`` source trees.

Each rule row covers a half-open base-version range ``[min, max)``.  The
applicable row for a version is the *last* row whose range contains it, so
a layout change is handled by appending a row.  Patterns are ``fnmatch``
globs relative to the distribution home, with ``{version}`` substituted;
``*`` also matches ``/``.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from gradle_republish.core.errors import LayoutMismatch
from gradle_republish.models.versioning import GradleVersion

PUBLISH_GROUP = "name.remal.gradle-api"

BOM_NAME = "gradle-api-bom"


class ExtractionRule(BaseModel):
    """How to assemble one logical artifact for a range of Gradle versions."""

    model_config = ConfigDict(frozen=True)

    logical_artifact: str
    artifact_name: str
    patterns: tuple[str, ...]
    required: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    min_version: str | None = None
    max_version: str | None = None  # exclusive
    classifier: str | None = None
    distribution_type: str = "bin"
    mode: str = "jar"  # "jar" merges matched jars, "sources" zips matched source trees
    # Library jars whose coordinates become POM dependencies of the artifact
    dependency_patterns: tuple[str, ...] = ()

    def covers(self, version: GradleVersion) -> bool:
        if self.min_version is not None:
            if version.compare_base(GradleVersion.parse(self.min_version)) < 0:
                return False
        if self.max_version is not None:
            if version.compare_base(GradleVersion.parse(self.max_version)) >= 0:
                return False
        return True

    def _expand(self, globs: Iterable[str], version: GradleVersion) -> list[str]:
        return [g.replace("{version}", version.version) for g in globs]

    def select(self, entries: Sequence[str], version: GradleVersion) -> list[str]:
        """Return the matching entry names, sorted.

        Raises
        ------
        LayoutMismatch
            If any required glob matches nothing.
        """
        for required in self._expand(self.required, version):
            if not any(fnmatch.fnmatchcase(e, required) for e in entries):
                raise LayoutMismatch(
                    f"Gradle {version} distribution has no entry matching {required!r} "
                    f"required for {self.logical_artifact!r}"
                )
        patterns = self._expand(self.patterns, version)
        excludes = self._expand(self.excludes, version)
        selected = [
            e for e in entries
            if any(fnmatch.fnmatchcase(e, p) for p in patterns)
            and not any(fnmatch.fnmatchcase(e, x) for x in excludes)
        ]
        if not selected:
            raise LayoutMismatch(
                f"Gradle {version} distribution has no entries for {self.logical_artifact!r}"
            )
        return sorted(selected)

    def select_dependencies(
        self, entries: Sequence[str], merged: Iterable[str], version: GradleVersion
    ) -> list[str]:
        """Library jars matching ``dependency_patterns`` that are not merged in, sorted."""
        patterns = self._expand(self.dependency_patterns, version)
        skip = set(merged)
        return sorted(
            e for e in entries
            if e.endswith(".jar") and e not in skip
            and any(fnmatch.fnmatchcase(e, p) for p in patterns)
        )


DEFAULT_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        logical_artifact="api",
        artifact_name="gradle-api",
        patterns=("lib/gradle-*-{version}.jar", "lib/plugins/gradle-*-{version}.jar"),
        required=("lib/gradle-core-{version}.jar",),
        excludes=("*gradle-test-kit-*", "*gradle-wrapper*", "*gradle-launcher-*"),
        dependency_patterns=("lib/*.jar",),
        max_version="5.0",
    ),
    ExtractionRule(
        logical_artifact="api",
        artifact_name="gradle-api",
        patterns=("lib/gradle-*-{version}.jar", "lib/plugins/gradle-*-{version}.jar"),
        required=("lib/gradle-core-api-{version}.jar",),
        excludes=("*gradle-test-kit-*", "*gradle-wrapper*", "*gradle-launcher-*"),
        dependency_patterns=("lib/*.jar",),
        min_version="5.0",
    ),
    ExtractionRule(
        logical_artifact="test-kit",
        artifact_name="gradle-test-kit",
        patterns=("lib/gradle-test-kit-{version}.jar",),
        required=("lib/gradle-test-kit-{version}.jar",),
        min_version="2.7",
    ),
    ExtractionRule(
        logical_artifact="wrapper",
        artifact_name="gradle-wrapper",
        patterns=("lib/*gradle-wrapper*-{version}.jar",),
        required=("lib/*gradle-wrapper*-{version}.jar",),
    ),
    ExtractionRule(
        logical_artifact="launcher",
        artifact_name="gradle-launcher",
        patterns=("lib/gradle-launcher-{version}.jar",),
        required=("lib/gradle-launcher-{version}.jar",),
    ),
    ExtractionRule(
        logical_artifact="kotlin-dsl",
        artifact_name="gradle-kotlin-dsl",
        patterns=("lib/*gradle-kotlin-dsl*-{version}.jar",),
        required=("lib/gradle-kotlin-dsl-{version}.jar",),
        dependency_patterns=("lib/kotlin-*.jar",),
        min_version="5.0",
    ),
    ExtractionRule(
        logical_artifact="sources",
        artifact_name="gradle-api",
        patterns=("src/*",),
        required=("src/*",),
        classifier="sources",
        distribution_type="all",
        mode="sources",
    ),
)

LOGICAL_ARTIFACTS: tuple[str, ...] = tuple(dict.fromkeys(r.logical_artifact for r in DEFAULT_RULES))


class LayoutRules:
    """Ordered extraction rule table."""

    def __init__(self, rules: Iterable[ExtractionRule] = DEFAULT_RULES) -> None:
        self._rules = tuple(rules)

    @property
    def logical_artifacts(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(r.logical_artifact for r in self._rules))

    def rule_for(self, logical_artifact: str, version: GradleVersion) -> ExtractionRule:
        """Return the last rule covering *version* for *logical_artifact*.

        Raises
        ------
        LayoutMismatch
            If the artifact is unknown or no row covers the version.
        """
        known = False
        found: ExtractionRule | None = None
        for rule in self._rules:
            if rule.logical_artifact != logical_artifact:
                continue
            known = True
            if rule.covers(version):
                found = rule
        if not known:
            raise LayoutMismatch(f"Unknown logical artifact: {logical_artifact!r}")
        if found is None:
            raise LayoutMismatch(
                f"No extraction rule for {logical_artifact!r} covers Gradle {version}"
            )
        return found

    def distribution_type(self, logical_artifacts: Iterable[str], version: GradleVersion) -> str:
        """``all`` if any requested artifact needs the full distribution, else ``bin``."""
        types = {self.rule_for(name, version).distribution_type for name in logical_artifacts}
        return "all" if "all" in types else "bin"
