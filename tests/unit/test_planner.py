"""Unit tests for ExecutionPlanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from gradle_republish.core.errors import InvalidVersionFormat, ToolchainUnavailable
from gradle_republish.core.planner import EXPECTED_GRADLE_VERSION_ENV, ExecutionPlanner
from gradle_republish.core.resolver import VersionCompatibilityResolver
from gradle_republish.models.compatibility import JvmThreshold
from gradle_republish.models.versioning import GradleVersion
from gradle_republish.providers.toolchains import JvmInstallation

ADD_OPENS = "--add-opens=java.base/java.lang=ALL-UNNAMED"
NATIVE_ACCESS = "--enable-native-access=ALL-UNNAMED"


class StaticProvisioner:
    """Provisioner that serves a fixed set of installations and records requests."""

    def __init__(self, *levels: int, report_level: int | None = None) -> None:
        self.levels = levels
        self.report_level = report_level
        self.requests: list[int] = []

    def provision(self, feature_level: int) -> JvmInstallation | None:
        self.requests.append(feature_level)
        if feature_level not in self.levels:
            return None
        return JvmInstallation(
            home=Path(f"/opt/jdk-{feature_level}"),
            feature_level=self.report_level or feature_level,
            version=str(feature_level),
        )


class TestPlan:
    def test_plan_for_gradle_8(self):
        planner = ExecutionPlanner(provisioner=StaticProvisioner(8, 17))
        execution = planner.plan("8.2")
        assert execution.gradle_version == "8.2"
        assert execution.jvm_level == 8
        assert execution.runtime_flags == ()
        assert execution.java_home == Path("/opt/jdk-8")
        assert execution.java_executable == Path("/opt/jdk-8/bin/java")
        assert execution.environment == {EXPECTED_GRADLE_VERSION_ENV: "8.2"}
        assert execution.jvm_arguments() == ["-ea"]

    def test_plan_for_gradle_9(self):
        execution = ExecutionPlanner(provisioner=StaticProvisioner(18)).plan("9.0")
        assert execution.jvm_level == 18
        assert execution.jvm_arguments() == ["-ea", ADD_OPENS]

    def test_qualified_version_in_environment(self):
        execution = ExecutionPlanner(provisioner=StaticProvisioner(8)).plan("6.0-rc-1")
        assert execution.environment[EXPECTED_GRADLE_VERSION_ENV] == "6.0-rc-1"

    def test_flags_follow_provisioned_jvm(self):
        resolver = VersionCompatibilityResolver(
            thresholds=[JvmThreshold(min_gradle_version=GradleVersion.parse("10.0"), jvm_level=24)]
        )
        execution = ExecutionPlanner(resolver, StaticProvisioner(24)).plan("10.0")
        assert execution.runtime_flags == (ADD_OPENS, NATIVE_ACCESS)

    def test_never_substitutes_another_level(self):
        provisioner = StaticProvisioner(17, 21)
        with pytest.raises(ToolchainUnavailable, match="feature level 18"):
            ExecutionPlanner(provisioner=provisioner).plan("9.0")
        assert provisioner.requests == [18]

    def test_rejects_mismatched_installation(self):
        with pytest.raises(ToolchainUnavailable, match="returned JVM 21"):
            ExecutionPlanner(provisioner=StaticProvisioner(18, report_level=21)).plan("9.0")

    def test_invalid_version(self):
        provisioner = StaticProvisioner(8)
        with pytest.raises(InvalidVersionFormat):
            ExecutionPlanner(provisioner=provisioner).plan("not-a-version")
        assert provisioner.requests == []


class TestCheckMinimum:
    def test_enabled_when_at_or_above_minimum(self):
        enabled, message = ExecutionPlanner(provisioner=StaticProvisioner()).check_minimum("8.2", "7.0")
        assert enabled is True
        assert message == "Current Gradle version 8.2 is greater or equal to min testable version 7.0"

    def test_disabled_below_minimum_with_reason(self):
        enabled, message = ExecutionPlanner(provisioner=StaticProvisioner()).check_minimum(
            "6.9.4", "7.0", "configuration cache"
        )
        assert enabled is False
        assert message.endswith("Reason: configuration cache.")

    def test_prerelease_compares_on_base(self):
        enabled, _ = ExecutionPlanner(provisioner=StaticProvisioner()).check_minimum("7.0-rc-1", "7.0")
        assert enabled is True
