"""Unit tests for library dependency inference."""

from __future__ import annotations

import io
import zipfile

import pytest

from gradle_republish.core.dependencies import (
    infer_dependencies,
    infer_dependency,
    split_jar_name,
    version_key,
)
from gradle_republish.core.errors import LayoutMismatch
from gradle_republish.models.versioning import GradleVersion


def _jar(entries: dict[str, bytes] | None = None) -> zipfile.ZipFile:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as jar:
        for name, content in (entries or {"Empty.class": b""}).items():
            jar.writestr(name, content)
    return zipfile.ZipFile(io.BytesIO(buffer.getvalue()))


def _pom_properties(group: str, name: str, version: str) -> dict[str, bytes]:
    text = f"#Generated by Maven\ngroupId={group}\nartifactId={name}\nversion={version}\n"
    return {f"META-INF/maven/{group}/{name}/pom.properties": text.encode()}


# ---------------------------------------------------------------------------
# Test: jar file names
# ---------------------------------------------------------------------------


class TestJarNames:
    @pytest.mark.parametrize(
        ("file_name", "expected"),
        [
            ("guava-32.1.2-jre.jar", ("guava", "32.1.2-jre")),
            ("kotlin-stdlib-1.9.22.jar", ("kotlin-stdlib", "1.9.22")),
            ("javax.inject-1.jar", ("javax.inject", "1")),
            ("jsp-api-2.1-6.1.14.jar", ("jsp-api-2.1", "6.1.14")),
            ("native-platform-0.22-milestone-25.jar", ("native-platform", "0.22-milestone-25")),
        ],
    )
    def test_split(self, file_name, expected):
        assert split_jar_name(file_name) == expected

    def test_unversioned_or_not_a_jar(self):
        assert split_jar_name("tools.jar") is None
        assert split_jar_name("guava-32.1.2-jre.zip") is None

    def test_version_key_orders_numerically(self):
        assert version_key("2.4.21") > version_key("2.4.19")
        assert version_key("4.0.21") >= (4,)
        assert version_key("3.0.17") < (4,)


# ---------------------------------------------------------------------------
# Test: single jar inference
# ---------------------------------------------------------------------------


class TestInferDependency:
    def test_pom_properties_win(self):
        jar = _jar(_pom_properties("com.google.guava", "guava", "32.1.2-jre"))
        dep = infer_dependency("guava-32.1.2-jre.jar", jar)
        assert dep.coordinates == "com.google.guava:guava:32.1.2-jre"
        assert dep.bom is None

    def test_known_name_prefix(self):
        dep = infer_dependency("javax.inject-1.jar", _jar())
        assert dep.group == "javax.inject"
        assert infer_dependency("ant-launcher-1.10.13.jar", _jar()).group == "org.apache.ant"

    def test_groovy_group_moves_at_4(self):
        assert infer_dependency("groovy-3.0.17.jar", _jar()).group == "org.codehaus.groovy"
        assert infer_dependency("groovy-json-4.0.15.jar", _jar()).group == "org.apache.groovy"

    def test_library_boms(self):
        assert infer_dependency("groovy-3.0.17.jar", _jar()).bom == "groovy-bom"
        assert infer_dependency("groovy-2.4.15.jar", _jar()).bom is None
        assert infer_dependency("kotlin-stdlib-1.9.22.jar", _jar()).bom == "kotlin-bom"
        asm = infer_dependency("asm-9.5.jar", _jar(_pom_properties("org.ow2.asm", "asm", "9.5")))
        assert asm.bom == "asm-bom"

    def test_jspecify_version_normalized(self):
        dep = infer_dependency("jspecify-1.0.0-no-module-annotation.jar", _jar())
        assert dep.coordinates == "org.jspecify:jspecify:1.0.0"

    def test_content_checks(self):
        jetbrains = _jar({"org/jetbrains/annotations/NotNull.class": b""})
        assert infer_dependency("annotations-24.0.1.jar", jetbrains).group == "org.jetbrains"
        jdt = _jar({"org/eclipse/jdt/core/JavaCore.class": b""})
        assert infer_dependency("core-3.33.0.jar", jdt).group == "org.eclipse.jdt"

    @pytest.mark.parametrize(
        "file_name",
        [
            "native-platform-0.22-milestone-25.jar",
            "gradle-core-8.2.jar",
            "groovy-all-1.3-2.5.12.jar",
            "fastutil-8.5.2-min-SNAPSHOT.jar",
        ],
    )
    def test_gradle_built_jars_skipped(self, file_name):
        assert infer_dependency(file_name, _jar()) is None

    def test_snapshot_declared_in_pom_properties_skipped(self):
        jar = _jar(_pom_properties("org.example", "lib", "1.0-SNAPSHOT"))
        assert infer_dependency("lib-1.0.jar", jar) is None

    def test_unknown_library_raises(self):
        with pytest.raises(LayoutMismatch, match="mystery-1.0.jar"):
            infer_dependency("mystery-1.0.jar", _jar())

    def test_unversioned_library_raises(self):
        with pytest.raises(LayoutMismatch, match="without a version"):
            infer_dependency("tools.jar", _jar())


# ---------------------------------------------------------------------------
# Test: distribution-wide inference
# ---------------------------------------------------------------------------


def _distribution(libraries: dict[str, dict[str, bytes] | None]) -> zipfile.ZipFile:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as dist:
        for file_name, entries in libraries.items():
            inner = io.BytesIO()
            with zipfile.ZipFile(inner, "w") as jar:
                for name, content in (entries or {"Empty.class": b""}).items():
                    jar.writestr(name, content)
            dist.writestr(f"gradle-8.2/lib/{file_name}", inner.getvalue())
    return zipfile.ZipFile(io.BytesIO(buffer.getvalue()))


class TestInferDependencies:
    def test_sorted_and_deduplicated(self):
        dist = _distribution({
            "kotlin-stdlib-1.9.22.jar": None,
            "guava-32.1.2-jre.jar": _pom_properties("com.google.guava", "guava", "32.1.2-jre"),
            "plugins/guava-32.1.2-jre.jar": _pom_properties("com.google.guava", "guava", "32.1.2-jre"),
            "native-platform-0.22-milestone-25.jar": None,
        })
        entries = [n.removeprefix("gradle-8.2/") for n in dist.namelist()]
        deps = infer_dependencies(dist, "gradle-8.2/", entries, GradleVersion.parse("8.2"))
        assert [d.coordinates for d in deps] == [
            "com.google.guava:guava:32.1.2-jre",
            "org.jetbrains.kotlin:kotlin-stdlib:1.9.22",
        ]

    def test_every_unknown_library_reported(self):
        dist = _distribution({"mystery-1.0.jar": None, "enigma-2.0.jar": None, "junit-4.13.2.jar": None})
        entries = [n.removeprefix("gradle-8.2/") for n in dist.namelist()]
        with pytest.raises(LayoutMismatch) as info:
            infer_dependencies(dist, "gradle-8.2/", entries, GradleVersion.parse("8.2"))
        assert "mystery-1.0.jar" in str(info.value)
        assert "enigma-2.0.jar" in str(info.value)
        assert "junit" not in str(info.value)
