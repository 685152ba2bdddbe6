"""Distribution extractor — pulls artifacts out of a Gradle distribution.

Cache layout under ``cache_dir``::

    distributions/gradle-<version>-<type>.zip     fetched distributions
    extracted/<version>/<key>/manifest.json       one entry per (version, targets)
    extracted/<version>/<key>/payloads/*          repackaged artifacts
    locks/<version>.lock                          per-version file locks
    tmp/                                          scoped extraction workspaces

Design:
- Fetch-or-reuse: a distribution zip is downloaded once and reused.
- Write-to-temporary-then-rename: both the downloaded zip and the extracted
  entry directory are moved into place with ``os.replace``; that rename is
  the single point after which they exist.  Readers see nothing or a
  complete artifact set.
- At most one in-flight extraction per version across every extractor and
  process sharing the cache; concurrent callers for the same version block
  on a ``filelock.FileLock`` and then observe the cache hit.
- Each manifest records the SHA-256 of the distribution it was built from,
  so an expected digest is enforced on cache hits too.
"""

from __future__ import annotations

import contextlib
import io
import json
import logging
import os
import tempfile
import zipfile
from collections.abc import Iterable, Iterator
from pathlib import Path

from filelock import FileLock, Timeout

from gradle_republish.core.dependencies import infer_dependencies
from gradle_republish.core.errors import ChecksumMismatch, DistributionUnavailable, LayoutMismatch
from gradle_republish.core.hasher import cache_key, file_digest, fingerprint_file
from gradle_republish.core.layout import PUBLISH_GROUP, ExtractionRule, LayoutRules
from gradle_republish.core.resolver import VersionCompatibilityResolver, as_gradle_version
from gradle_republish.models.artifacts import ArtifactDescriptor, LibraryDependency
from gradle_republish.models.versioning import GradleVersion
from gradle_republish.providers.distributions import DistributionSource, distribution_file_name

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"

# Fixed timestamp for reproducible archives (the earliest date zip supports)
_ZIP_EPOCH = (1980, 2, 1, 0, 0, 0)

_SIGNATURE_SUFFIXES = (".SF", ".RSA", ".DSA", ".EC")


def _is_dropped_jar_entry(name: str) -> bool:
    """Jar manifests and signature files are regenerated, never copied."""
    if not name.startswith("META-INF/"):
        return False
    return name == "META-INF/MANIFEST.MF" or name.endswith(_SIGNATURE_SUFFIXES)


def _zip_info(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=_ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    return info


def _manifest_bytes(title: str, version: str) -> bytes:
    return (
        "Manifest-Version: 1.0\r\n"
        f"Implementation-Title: {title}\r\n"
        f"Implementation-Version: {version}\r\n"
        "\r\n"
    ).encode("utf-8")


class DistributionExtractor:
    """Extract logical artifact sets from Gradle distributions.

    Parameters
    ----------
    cache_dir:
        Root of the extraction cache.
    source:
        Where distribution zips come from.
    resolver:
        Used to validate requested versions before any I/O.
    rules:
        Extraction rule table.
    group:
        Published group of every produced descriptor.
    distribution_type:
        ``bin`` fetches the smallest distribution that satisfies the
        requested artifacts; ``all`` always fetches the full one.
    lock_timeout:
        Seconds to wait for another extraction of the same version; a
        negative value waits indefinitely.
    """

    def __init__(
        self,
        cache_dir: Path,
        source: DistributionSource,
        *,
        resolver: VersionCompatibilityResolver | None = None,
        rules: LayoutRules | None = None,
        group: str = PUBLISH_GROUP,
        distribution_type: str = "bin",
        lock_timeout: float = -1,
    ) -> None:
        if distribution_type not in ("bin", "all"):
            raise ValueError(f"Unknown distribution type: {distribution_type!r}")
        self._cache_dir = Path(cache_dir)
        self._source = source
        self._resolver = resolver or VersionCompatibilityResolver()
        self._rules = rules or LayoutRules()
        self._group = group
        self._distribution_type = distribution_type
        self._lock_timeout = lock_timeout

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def rules(self) -> LayoutRules:
        return self._rules

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(
        self,
        version: GradleVersion | str,
        target_coordinates: Iterable[str],
        *,
        expected_sha256: str | None = None,
    ) -> frozenset[ArtifactDescriptor]:
        """Return the descriptors of the requested logical artifacts.

        Raises
        ------
        InvalidVersionFormat
            If *version* cannot be parsed (before any I/O).
        DistributionUnavailable
            If the distribution cannot be fetched.  Retryable.
        LayoutMismatch
            If the distribution lacks an artifact the rule table expects.
        ChecksumMismatch
            If the distribution, or the one a cached entry was built from,
            does not match *expected_sha256*, or if the download does not
            match the digest declared by the source.
        """
        gradle_version = as_gradle_version(version)
        self._resolver.resolve(gradle_version)
        targets = tuple(sorted(set(target_coordinates)))
        if not targets:
            raise ValueError("At least one logical artifact must be requested")
        rules = {name: self._rules.rule_for(name, gradle_version) for name in targets}

        entry_dir = self.entry_dir(gradle_version, targets)
        cached = self._read_entry(entry_dir, expected_sha256)
        if cached is not None:
            logger.debug("Cache hit for Gradle %s %s", gradle_version, list(targets))
            return cached

        with self._lock_for(gradle_version):
            cached = self._read_entry(entry_dir, expected_sha256)
            if cached is not None:
                return cached
            return self._extract_locked(gradle_version, targets, rules, entry_dir, expected_sha256)

    def is_cached(self, version: GradleVersion | str, target_coordinates: Iterable[str]) -> bool:
        gradle_version = as_gradle_version(version)
        targets = tuple(sorted(set(target_coordinates)))
        return self._read_entry(self.entry_dir(gradle_version, targets)) is not None

    def entry_dir(self, version: GradleVersion, targets: tuple[str, ...]) -> Path:
        key = cache_key({"version": version.version, "targets": list(targets)})
        return self._cache_dir / "extracted" / version.version / key

    def distribution_path(self, version: GradleVersion, distribution_type: str) -> Path:
        return self._cache_dir / "distributions" / distribution_file_name(version, distribution_type)

    def lock_path(self, version: GradleVersion) -> Path:
        return self._cache_dir / "locks" / f"{version.version}.lock"

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def _lock_for(self, version: GradleVersion) -> Iterator[None]:
        """Hold the per-version file lock shared by every user of the cache."""
        path = self.lock_path(version)
        path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(str(path))
        try:
            lock.acquire(timeout=self._lock_timeout)
        except Timeout as exc:
            raise DistributionUnavailable(
                f"Timed out after {self._lock_timeout}s waiting for another extraction of Gradle {version}"
            ) from exc
        try:
            yield
        finally:
            lock.release()

    # ------------------------------------------------------------------
    # Cache entries
    # ------------------------------------------------------------------

    def _read_entry(
        self, entry_dir: Path, expected_sha256: str | None = None
    ) -> frozenset[ArtifactDescriptor] | None:
        """Load a cache entry after a freshness check, or return None.

        Raises
        ------
        ChecksumMismatch
            If the entry was built from a distribution whose SHA-256 differs
            from *expected_sha256*.
        """
        manifest_path = entry_dir / MANIFEST_FILE
        if not manifest_path.is_file():
            return None
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
            recorded_sha256 = manifest["distribution_sha256"]
            descriptors = []
            for raw in manifest["artifacts"]:
                payload = entry_dir / raw.pop("payload")
                if not payload.is_file() or payload.stat().st_size != raw["size_bytes"]:
                    logger.warning("Stale cache entry %s: %s is missing or changed", entry_dir, payload)
                    return None
                descriptors.append(ArtifactDescriptor(**raw, payload_path=payload))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Unreadable cache entry %s: %s", entry_dir, exc)
            return None

        if expected_sha256 and recorded_sha256 != expected_sha256.lower():
            raise ChecksumMismatch(
                f"Cached artifacts in {entry_dir} were extracted from a distribution with SHA-256 "
                f"{recorded_sha256}, not the expected {expected_sha256}"
            )
        return frozenset(descriptors)

    def _extract_locked(
        self,
        version: GradleVersion,
        targets: tuple[str, ...],
        rules: dict[str, ExtractionRule],
        entry_dir: Path,
        expected_sha256: str | None,
    ) -> frozenset[ArtifactDescriptor]:
        distribution_type = self._rules.distribution_type(targets, version)
        if self._distribution_type == "all":
            distribution_type = "all"
        distribution = self._obtain_distribution(version, distribution_type, expected_sha256)

        tmp_root = self._cache_dir / "tmp"
        tmp_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=tmp_root, prefix=f"extract-{version.version}-") as workspace:
            staged = Path(workspace) / "entry"
            payloads = staged / "payloads"
            payloads.mkdir(parents=True)

            records = []
            for name in targets:
                rule = rules[name]
                descriptor = self._build_artifact(distribution, version, rule, payloads)
                record = descriptor.model_dump(mode="json", exclude={"payload_path"})
                record["payload"] = f"payloads/{descriptor.file_name}"
                records.append(record)
                logger.info("Extracted %s (%s)", descriptor.coordinates, descriptor.fingerprint)

            manifest = {
                "version": version.version,
                "targets": list(targets),
                "distribution": distribution.name,
                "distribution_sha256": file_digest(distribution),
                "artifacts": records,
            }
            (staged / MANIFEST_FILE).write_text(json.dumps(manifest, indent=2), encoding="utf-8")

            entry_dir.parent.mkdir(parents=True, exist_ok=True)
            if entry_dir.exists():
                # A stale entry goes into the workspace and is removed with it
                os.replace(entry_dir, Path(workspace) / "stale")
            os.replace(staged, entry_dir)

        result = self._read_entry(entry_dir)
        if result is None:
            raise LayoutMismatch(f"Extraction of Gradle {version} produced an unreadable cache entry")
        return result

    # ------------------------------------------------------------------
    # Distribution acquisition
    # ------------------------------------------------------------------

    def _obtain_distribution(
        self, version: GradleVersion, distribution_type: str, expected_sha256: str | None
    ) -> Path:
        target = self.distribution_path(version, distribution_type)
        if target.is_file():
            if expected_sha256 and file_digest(target) != expected_sha256.lower():
                raise ChecksumMismatch(
                    f"Cached distribution {target.name} does not match expected SHA-256 {expected_sha256}"
                )
            logger.debug("Reusing cached distribution %s", target)
            return target

        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".part")
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            declared = self._source.fetch(version, distribution_type, tmp_path)
            actual = file_digest(tmp_path)
            for label, digest in (("expected", expected_sha256), ("declared", declared)):
                if digest and digest.lower() != actual:
                    raise ChecksumMismatch(
                        f"Gradle {version} distribution SHA-256 {actual} does not match "
                        f"{label} {digest}"
                    )
            os.replace(tmp_path, target)
        finally:
            tmp_path.unlink(missing_ok=True)
        return target

    # ------------------------------------------------------------------
    # Repackaging
    # ------------------------------------------------------------------

    def _build_artifact(
        self, distribution: Path, version: GradleVersion, rule: ExtractionRule, out_dir: Path
    ) -> ArtifactDescriptor:
        descriptor_stub = ArtifactDescriptor(
            group=self._group,
            name=rule.artifact_name,
            version=version.version,
            classifier=rule.classifier,
            fingerprint="sha256:",
            logical_artifact=rule.logical_artifact,
        )
        out_path = out_dir / descriptor_stub.file_name

        dependencies: tuple[LibraryDependency, ...] = ()
        try:
            with zipfile.ZipFile(distribution) as dist:
                home, entries = self._home_entries(dist, version)
                selected = rule.select(entries, version)
                if rule.mode == "sources":
                    self._write_sources(dist, home, selected, out_path)
                else:
                    self._write_merged_jar(dist, home, selected, out_path, rule.artifact_name, version)
                    library_jars = rule.select_dependencies(entries, selected, version)
                    dependencies = infer_dependencies(dist, home, library_jars, version)
        except zipfile.BadZipFile as exc:
            distribution.unlink(missing_ok=True)
            raise ChecksumMismatch(f"Corrupt Gradle {version} distribution: {exc}") from exc

        return descriptor_stub.model_copy(update={
            "fingerprint": fingerprint_file(out_path),
            "size_bytes": out_path.stat().st_size,
            "dependencies": dependencies,
        })

    @staticmethod
    def _home_entries(dist: zipfile.ZipFile, version: GradleVersion) -> tuple[str, list[str]]:
        """Return the distribution home prefix and file entries relative to it."""
        names = [n for n in dist.namelist() if not n.endswith("/")]
        roots = {n.split("/", 1)[0] for n in names}
        if len(roots) != 1:
            raise LayoutMismatch(
                f"Gradle {version} distribution must have a single top-level directory, found {sorted(roots)}"
            )
        home = f"{roots.pop()}/"
        return home, [n[len(home):] for n in names if n.startswith(home) and len(n) > len(home)]

    @staticmethod
    def _write_merged_jar(
        dist: zipfile.ZipFile,
        home: str,
        jars: list[str],
        out_path: Path,
        title: str,
        version: GradleVersion,
    ) -> None:
        contents: dict[str, bytes] = {}
        for jar_name in jars:
            with zipfile.ZipFile(io.BytesIO(dist.read(home + jar_name))) as jar:
                for info in jar.infolist():
                    if info.is_dir() or _is_dropped_jar_entry(info.filename):
                        continue
                    # First jar wins on duplicate entries
                    contents.setdefault(info.filename, jar.read(info))

        with zipfile.ZipFile(out_path, "w") as out:
            out.writestr(_zip_info("META-INF/MANIFEST.MF"), _manifest_bytes(title, version.version))
            for name in sorted(contents):
                out.writestr(_zip_info(name), contents[name])

    @staticmethod
    def _write_sources(dist: zipfile.ZipFile, home: str, entries: list[str], out_path: Path) -> None:
        contents: dict[str, bytes] = {}
        for entry in entries:
            # src/<module>/<path> -> <path>
            parts = entry.split("/", 2)
            if len(parts) < 3:
                continue
            contents.setdefault(parts[2], dist.read(home + entry))

        if not contents:
            raise LayoutMismatch(f"No source files found under {home}src/")
        with zipfile.ZipFile(out_path, "w") as out:
            for name in sorted(contents):
                out.writestr(_zip_info(name), contents[name])
