"""Shared test fixtures for gradle-republish."""

from __future__ import annotations

import io
import threading
import time
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from gradle_republish.core.extractor import DistributionExtractor
from gradle_republish.core.hasher import fingerprint_bytes
from gradle_republish.core.layout import PUBLISH_GROUP
from gradle_republish.core.publisher import RepositoryPublisher
from gradle_republish.core.resolver import VersionCompatibilityResolver
from gradle_republish.models.artifacts import ArtifactDescriptor
from gradle_republish.models.credentials import Credentials, LocalRepositoryTarget
from gradle_republish.models.versioning import GradleVersion
from gradle_republish.providers.distributions import LocalDistributionSource
from gradle_republish.providers.repositories import LocalFileTransport


def make_jar(entries: dict[str, bytes]) -> bytes:
    """Build an in-memory jar (zip) from ``{name: content}``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as jar:
        jar.writestr("META-INF/MANIFEST.MF", b"Manifest-Version: 1.0\r\nCreated-By: test\r\n\r\n")
        for name, content in entries.items():
            jar.writestr(name, content)
    return buffer.getvalue()


GUAVA_POM_PROPERTIES = (
    b"#Generated by Maven\n"
    b"groupId=com.google.guava\n"
    b"artifactId=guava\n"
    b"version=32.1.2-jre\n"
)

# Third-party jars shipped in lib/ next to the Gradle modules
DEFAULT_LIBRARIES: dict[str, dict[str, bytes]] = {
    "guava-32.1.2-jre.jar": {
        "com/google/Guava.class": b"g",
        "META-INF/maven/com.google.guava/guava/pom.properties": GUAVA_POM_PROPERTIES,
    },
    "groovy-3.0.17.jar": {"groovy/lang/GroovyObject.class": b"groovy"},
    "kotlin-stdlib-1.9.22.jar": {"kotlin/Unit.class": b"kotlin"},
    "native-platform-0.22-milestone-25.jar": {"net/rubygrapefruit/platform/Native.class": b"native"},
}


def build_distribution(
    directory: Path,
    version: str,
    *,
    distribution_type: str = "bin",
    with_sources: bool = False,
    omit: tuple[str, ...] = (),
    marker: bytes = b"",
    extra_libraries: dict[str, dict[str, bytes]] | None = None,
) -> Path:
    """Write a minimal but structurally faithful Gradle distribution zip.

    ``omit`` drops jars by module name (e.g. ``"gradle-test-kit"``) or by
    library file name; ``extra_libraries`` adds more jars to ``lib/``;
    ``marker`` is mixed into class bytes so two builds can differ.
    """
    home = f"gradle-{version}"
    modules = {
        "gradle-core-api": {"org/gradle/api/Project.class": b"project" + marker},
        "gradle-core": {
            "org/gradle/internal/Core.class": b"core" + marker,
            "META-INF/GRADLE.SF": b"signature",
        },
        "gradle-test-kit": {"org/gradle/testkit/runner/GradleRunner.class": b"runner" + marker},
        "gradle-wrapper": {"org/gradle/wrapper/WrapperMain.class": b"wrapper" + marker},
        "gradle-launcher": {"org/gradle/launcher/Main.class": b"launcher" + marker},
        "gradle-kotlin-dsl": {"org/gradle/kotlin/dsl/KotlinBuildScript.class": b"kotlin" + marker},
    }
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"gradle-{version}-{distribution_type}.zip"
    with zipfile.ZipFile(path, "w") as dist:
        dist.writestr(f"{home}/bin/gradle", b"#!/bin/sh\n")
        for module, entries in modules.items():
            if module in omit:
                continue
            dist.writestr(f"{home}/lib/{module}-{version}.jar", make_jar(entries))
        dist.writestr(
            f"{home}/lib/plugins/gradle-plugins-{version}.jar",
            make_jar({
                "org/gradle/api/plugins/JavaPlugin.class": b"java-plugin" + marker,
                # Duplicate of a core-api entry: the first jar in sorted order wins
                "org/gradle/api/Project.class": b"shadowed",
            }),
        )
        libraries = {**DEFAULT_LIBRARIES, **(extra_libraries or {})}
        for jar_name, entries in libraries.items():
            if jar_name in omit:
                continue
            dist.writestr(f"{home}/lib/{jar_name}", make_jar(entries))
        if with_sources:
            dist.writestr(f"{home}/src/core-api/org/gradle/api/Project.java", b"interface Project {}")
            dist.writestr(f"{home}/src/launcher/org/gradle/launcher/Main.java", b"class Main {}")
    return path


class CountingSource(LocalDistributionSource):
    """A local distribution source that counts fetches.

    A *delay* holds every fetch open so concurrent callers overlap.
    """

    def __init__(self, directory: Path, delay: float = 0.0) -> None:
        super().__init__(directory)
        self.fetches: list[tuple[str, str]] = []
        self.delay = delay
        self._guard = threading.Lock()

    def fetch(self, version: GradleVersion, distribution_type: str, destination: Path) -> str | None:
        with self._guard:
            self.fetches.append((version.version, distribution_type))
        if self.delay:
            time.sleep(self.delay)
        return super().fetch(version, distribution_type, destination)


class RecordingTransportFactory:
    """Transport factory that records the credentials it was given.

    Every target is served from a local directory so remote targets can be
    exercised without a network.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.calls: list[tuple[Any, Credentials | None]] = []

    def __call__(self, target, credentials):
        self.calls.append((target, credentials))
        return LocalFileTransport(self.root)


@pytest.fixture
def dist_dir(tmp_path: Path) -> Path:
    """Directory of pre-built distribution zips."""
    return tmp_path / "dists"


@pytest.fixture
def make_distribution(dist_dir: Path) -> Callable[..., Path]:
    """Factory fixture: build a distribution zip in ``dist_dir``."""

    def _factory(version: str = "8.2", **kwargs: Any) -> Path:
        return build_distribution(dist_dir, version, **kwargs)

    return _factory


@pytest.fixture
def source(dist_dir: Path) -> CountingSource:
    return CountingSource(dist_dir)


@pytest.fixture
def slow_source(dist_dir: Path) -> CountingSource:
    return CountingSource(dist_dir, delay=0.2)


@pytest.fixture
def resolver() -> VersionCompatibilityResolver:
    return VersionCompatibilityResolver()


@pytest.fixture
def extractor(tmp_path: Path, source: CountingSource, resolver) -> DistributionExtractor:
    """Provide an extractor with a fresh cache backed by ``source``."""
    return DistributionExtractor(tmp_path / "cache", source, resolver=resolver)


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    return tmp_path / "repo"


@pytest.fixture
def local_target(repo_root: Path) -> LocalRepositoryTarget:
    return LocalRepositoryTarget(root=repo_root)


@pytest.fixture
def publisher() -> RepositoryPublisher:
    return RepositoryPublisher(max_workers=4)


@pytest.fixture
def make_artifact(tmp_path: Path) -> Callable[..., ArtifactDescriptor]:
    """Factory fixture: write a payload and describe it as an artifact."""

    def _factory(
        name: str = "gradle-api",
        content: bytes = b"payload",
        version: str = "8.2",
        **overrides: Any,
    ) -> ArtifactDescriptor:
        work = tmp_path / "work" / fingerprint_bytes(content).removeprefix("sha256:")[:12]
        work.mkdir(parents=True, exist_ok=True)
        payload = work / f"{name}-{version}.jar"
        payload.write_bytes(content)
        defaults: dict[str, Any] = {
            "group": PUBLISH_GROUP,
            "name": name,
            "version": version,
            "fingerprint": fingerprint_bytes(content),
            "size_bytes": len(content),
            "payload_path": payload,
        }
        defaults.update(overrides)
        return ArtifactDescriptor(**defaults)

    return _factory


@pytest.fixture
def recording_factory(tmp_path: Path) -> RecordingTransportFactory:
    """Transport factory backed by a local directory that records credentials."""
    return RecordingTransportFactory(tmp_path / "remote")
