"""Version compatibility resolver.

Maps a Gradle version string to the JVM feature level and runtime flags
required to run code built against it.  Resolution is two-stage:

1. The JVM level is picked from the Gradle *base* version using an ordered
   threshold table (highest matching row wins).
2. Runtime flags are picked from the *JVM level*, each flag gated by its
   own JVM threshold.  A flag such as native access applies once the
   execution JVM reaches a feature level, independent of why that JVM was
   chosen.

Both tables are data: new Gradle majors add rows, not branches.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence

from gradle_republish.models.compatibility import (
    CompatibilityProfile,
    JvmThreshold,
    RuntimeFlagRule,
)
from gradle_republish.models.versioning import GradleVersion

logger = logging.getLogger(__name__)

FALLBACK_JVM_LEVEL = 8

DEFAULT_JVM_THRESHOLDS: tuple[JvmThreshold, ...] = (
    JvmThreshold(min_gradle_version=GradleVersion.parse("9.0"), jvm_level=18),
)

DEFAULT_FLAG_RULES: tuple[RuntimeFlagRule, ...] = (
    RuntimeFlagRule(
        flag="--add-opens=java.base/java.lang=ALL-UNNAMED",
        min_jvm_level=9,
        reason="https://github.com/gradle/gradle/issues/18647",
    ),
    RuntimeFlagRule(
        flag="--enable-native-access=ALL-UNNAMED",
        min_jvm_level=24,
        reason="https://github.com/gradle/gradle/issues/31625",
    ),
)


def as_gradle_version(version: GradleVersion | str) -> GradleVersion:
    if isinstance(version, GradleVersion):
        return version
    return GradleVersion.parse(version)


class VersionCompatibilityResolver:
    """Pure, memoizing resolver of :class:`CompatibilityProfile` objects.

    Parameters
    ----------
    thresholds:
        ``(min Gradle version, JVM level)`` rows in any order; they are
        sorted ascending by base version.
    flag_rules:
        Runtime flag rules, kept in the given order (the emitted flag order).
    fallback_jvm_level:
        JVM level used when no threshold matches.
    """

    def __init__(
        self,
        thresholds: Iterable[JvmThreshold] = DEFAULT_JVM_THRESHOLDS,
        flag_rules: Sequence[RuntimeFlagRule] = DEFAULT_FLAG_RULES,
        *,
        fallback_jvm_level: int = FALLBACK_JVM_LEVEL,
    ) -> None:
        self._thresholds = tuple(
            sorted(thresholds, key=lambda row: row.min_gradle_version.base_key)
        )
        levels = [fallback_jvm_level, *(row.jvm_level for row in self._thresholds)]
        if levels != sorted(levels):
            raise ValueError(f"JVM levels must not decrease as Gradle versions increase: {levels}")
        self._flag_rules = tuple(flag_rules)
        self._fallback = fallback_jvm_level
        self._cache: dict[str, CompatibilityProfile] = {}
        self._lock = threading.Lock()

    @property
    def thresholds(self) -> tuple[JvmThreshold, ...]:
        return self._thresholds

    @property
    def flag_rules(self) -> tuple[RuntimeFlagRule, ...]:
        return self._flag_rules

    def resolve(self, version: GradleVersion | str) -> CompatibilityProfile:
        """Resolve the compatibility profile of a Gradle version.

        Raises
        ------
        InvalidVersionFormat
            If *version* is a string that cannot be parsed.
        """
        key = version.version if isinstance(version, GradleVersion) else version
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        gradle_version = as_gradle_version(version)
        jvm_level = self.jvm_level_for(gradle_version)
        profile = CompatibilityProfile(
            base_version=gradle_version.base_version,
            jvm_level=jvm_level,
            runtime_flags=self.flags_for(jvm_level),
            flag_rules=self._flag_rules,
        )
        logger.debug(
            "Resolved Gradle %s -> JVM %d, flags=%s",
            gradle_version, jvm_level, list(profile.runtime_flags),
        )
        with self._lock:
            return self._cache.setdefault(key, profile)

    def jvm_level_for(self, version: GradleVersion | str) -> int:
        """Return the JVM level of the highest threshold matching the base version."""
        base = as_gradle_version(version).base_version
        level = self._fallback
        for row in self._thresholds:
            if base.compare_base(row.min_gradle_version) >= 0:
                level = row.jvm_level
        return level

    def flags_for(self, jvm_level: int) -> tuple[str, ...]:
        """Runtime flags required when executing on a JVM of *jvm_level*."""
        return tuple(rule.flag for rule in self._flag_rules if rule.applies_to(jvm_level))

    @staticmethod
    def meets_minimum(version: GradleVersion | str, minimum: GradleVersion | str) -> bool:
        """True if the base of *version* is at least the base of *minimum*."""
        return as_gradle_version(version).compare_base(as_gradle_version(minimum)) >= 0
