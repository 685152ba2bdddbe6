"""End-to-end integration tests — resolve, extract, publish, verify and plan.

These tests exercise the resolver, extractor, POM rendering, publisher and
planner working together against on-disk distributions and repositories.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from gradle_republish.core.extractor import DistributionExtractor
from gradle_republish.core.planner import ExecutionPlanner
from gradle_republish.core.publisher import RepositoryPublisher
from gradle_republish.core.republisher import Republisher
from gradle_republish.models.artifacts import PublishStatus
from gradle_republish.providers.toolchains import LocalJvmProvisioner

NS = {"m": "http://maven.apache.org/POM/4.0.0"}
GROUP_PATH = Path("name/remal/gradle-api")


class TestFullPipeline:
    """Republish several Gradle versions into one local repository."""

    @pytest.fixture
    def republisher(self, extractor, resolver) -> Republisher:
        return Republisher(
            extractor,
            RepositoryPublisher(max_workers=4),
            resolver=resolver,
            license_name="Apache License, Version 2.0",
            license_url="https://www.apache.org/licenses/LICENSE-2.0.txt",
        )

    def test_republish_versions(self, republisher, make_distribution, local_target, repo_root):
        for version in ("4.10.3", "6.0-rc-1", "8.2", "9.0"):
            make_distribution(version)

        reports = {
            v: republisher.republish(v, ["api", "test-kit", "wrapper"], local_target)
            for v in ("4.10.3", "6.0-rc-1", "8.2", "9.0")
        }

        assert all(r.ok for r in reports.values())
        assert reports["8.2"].profile.jvm_level == 8
        assert reports["9.0"].profile.jvm_level == 18
        assert reports["6.0-rc-1"].profile.base_version.version == "6.0"
        for version in reports:
            assert (repo_root / GROUP_PATH / "gradle-api" / version / f"gradle-api-{version}.jar").is_file()
            assert (repo_root / GROUP_PATH / "gradle-api-bom" / version / f"gradle-api-bom-{version}.pom").is_file()
        assert RepositoryPublisher.verify(repo_root) == []

    def test_published_pom_contents(self, republisher, make_distribution, local_target, repo_root):
        make_distribution("8.2")
        republisher.republish("8.2", ["api", "test-kit"], local_target)

        pom = ET.parse(repo_root / GROUP_PATH / "gradle-test-kit" / "8.2" / "gradle-test-kit-8.2.pom").getroot()
        assert pom.findtext("m:licenses/m:license/m:name", namespaces=NS) == "Apache License, Version 2.0"
        bom = ET.parse(repo_root / GROUP_PATH / "gradle-api-bom" / "8.2" / "gradle-api-bom-8.2.pom").getroot()
        listed = [
            d.findtext("m:artifactId", namespaces=NS)
            for d in bom.findall("m:dependencyManagement/m:dependencies/m:dependency", NS)
        ]
        assert listed == ["gradle-api", "gradle-test-kit"]

    def test_api_pom_declares_libraries(self, republisher, make_distribution, local_target, repo_root):
        make_distribution("8.2")
        republisher.republish("8.2", ["api"], local_target)

        pom = ET.parse(repo_root / GROUP_PATH / "gradle-api" / "8.2" / "gradle-api-8.2.pom").getroot()
        imported = [
            d.findtext("m:artifactId", namespaces=NS)
            for d in pom.findall("m:dependencyManagement/m:dependencies/m:dependency", NS)
        ]
        assert imported == ["gradle-api-bom", "groovy-bom", "kotlin-bom"]
        declared = [
            (d.findtext("m:groupId", namespaces=NS), d.findtext("m:artifactId", namespaces=NS))
            for d in pom.findall("m:dependencies/m:dependency", NS)
        ]
        assert declared == [
            ("com.google.guava", "guava"),
            ("org.codehaus.groovy", "groovy"),
            ("org.jetbrains.kotlin", "kotlin-stdlib"),
        ]

    def test_rerun_from_cold_cache_is_idempotent(
        self, tmp_path, source, make_distribution, local_target, resolver
    ):
        make_distribution("8.2")
        first = Republisher(
            DistributionExtractor(tmp_path / "cache-1", source), RepositoryPublisher()
        ).republish("8.2", ["api", "launcher", "kotlin-dsl"], local_target)

        # A second machine with an empty cache rebuilds byte-identical jars
        second = Republisher(
            DistributionExtractor(tmp_path / "cache-2", source), RepositoryPublisher()
        ).republish("8.2", ["api", "launcher", "kotlin-dsl"], local_target)

        assert len(first.result.published) == len(first.result.outcomes)
        assert {o.status for o in second.result.outcomes} == {PublishStatus.SKIPPED_IDENTICAL}

    def test_release_candidate_and_final_are_distinct(self, republisher, make_distribution, local_target):
        make_distribution("6.0-rc-1")
        make_distribution("6.0")
        rc = republisher.republish("6.0-rc-1", ["api"], local_target)
        final = republisher.republish("6.0", ["api"], local_target)

        assert rc.profile.jvm_level == final.profile.jvm_level
        assert rc.profile.runtime_flags == final.profile.runtime_flags
        assert {d.coordinates for d in rc.artifacts}.isdisjoint({d.coordinates for d in final.artifacts})
        assert final.ok and not final.result.skipped

    def test_plan_after_publish(self, tmp_path, republisher, make_distribution, local_target, resolver):
        make_distribution("9.0")
        report = republisher.republish("9.0", ["test-kit"], local_target)

        jdk = tmp_path / "jdk-18"
        jdk.mkdir()
        (jdk / "release").write_text('JAVA_VERSION="18.0.2"\n', encoding="utf-8")
        planner = ExecutionPlanner(resolver, LocalJvmProvisioner([jdk], environ={}))
        execution = planner.plan(report.version)

        assert execution.jvm_level == report.profile.jvm_level == 18
        assert execution.jvm_arguments() == ["-ea", "--add-opens=java.base/java.lang=ALL-UNNAMED"]
        assert execution.environment["EXPECTED_GRADLE_VERSION"] == "9.0"
