"""Execution planner — turns a compatibility profile into a launchable configuration."""

from __future__ import annotations

import logging

from gradle_republish.core.errors import ToolchainUnavailable
from gradle_republish.core.resolver import VersionCompatibilityResolver, as_gradle_version
from gradle_republish.models.compatibility import ExecutionConfig
from gradle_republish.models.versioning import GradleVersion
from gradle_republish.providers.toolchains import JvmProvisioner, LocalJvmProvisioner

logger = logging.getLogger(__name__)

EXPECTED_GRADLE_VERSION_ENV = "EXPECTED_GRADLE_VERSION"


class ExecutionPlanner:
    """Plan how to exercise artifacts built against a Gradle version.

    The JVM level comes from the resolver; the provisioner must supply that
    exact level.  Runtime flags are evaluated against the provisioned JVM's
    actual feature level.
    """

    def __init__(
        self,
        resolver: VersionCompatibilityResolver | None = None,
        provisioner: JvmProvisioner | None = None,
    ) -> None:
        self._resolver = resolver or VersionCompatibilityResolver()
        self._provisioner = provisioner or LocalJvmProvisioner()

    def plan(self, version: GradleVersion | str) -> ExecutionConfig:
        """Return the execution configuration for *version*.

        Raises
        ------
        InvalidVersionFormat
            If *version* cannot be parsed.
        ToolchainUnavailable
            If no JVM of the required level can be provisioned.
        """
        gradle_version = as_gradle_version(version)
        profile = self._resolver.resolve(gradle_version)

        installation = self._provisioner.provision(profile.jvm_level)
        if installation is None:
            raise ToolchainUnavailable(
                f"Gradle {gradle_version} requires a JVM of feature level {profile.jvm_level}, "
                f"but none could be provisioned"
            )
        if installation.feature_level != profile.jvm_level:
            raise ToolchainUnavailable(
                f"Gradle {gradle_version} requires JVM {profile.jvm_level}, "
                f"provisioner returned JVM {installation.feature_level} at {installation.home}"
            )

        config = ExecutionConfig(
            gradle_version=gradle_version.version,
            jvm_level=installation.feature_level,
            runtime_flags=profile.flags_for(installation.feature_level),
            java_home=installation.home,
            environment={EXPECTED_GRADLE_VERSION_ENV: gradle_version.version},
        )
        logger.info(
            "Planned Gradle %s on JVM %d (%s) with flags %s",
            gradle_version, config.jvm_level, installation.home, list(config.runtime_flags),
        )
        return config

    def check_minimum(
        self, version: GradleVersion | str, minimum: GradleVersion | str, reason: str = ""
    ) -> tuple[bool, str]:
        """Decide whether a check gated on a minimum Gradle version should run.

        Returns ``(enabled, message)``; comparisons use base versions.
        """
        current = as_gradle_version(version).base_version
        floor = as_gradle_version(minimum).base_version
        if self._resolver.meets_minimum(current, floor):
            return True, (
                f"Current Gradle version {current} is greater or equal to "
                f"min testable version {floor}"
            )
        message = f"Current Gradle version {current} is less than min testable version {floor}"
        if reason:
            message += f". Reason: {reason}."
        return False, message
