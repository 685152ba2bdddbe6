"""Republisher — wires resolution, extraction, POM generation and publication.

One ``republish`` call for a Gradle version:

1. Resolve the compatibility profile (validates the version).
2. Extract the requested logical artifacts from the distribution.
3. Render a POM for every main jar plus the ``gradle-api-bom``.
4. Publish jars and POMs into the target repository.

Extraction errors propagate; publication failures are reported per
artifact in the returned :class:`RepublishReport`.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from gradle_republish.config import RepublishConfig, config
from gradle_republish.core.credentials import (
    CredentialResolver,
    environment_source,
    properties_file_source,
    property_source,
)
from gradle_republish.core.extractor import DistributionExtractor
from gradle_republish.core.layout import BOM_NAME, LayoutRules
from gradle_republish.core.pom import render_artifact_pom, render_bom, write_pom
from gradle_republish.core.publisher import RepositoryPublisher, default_transport_factory
from gradle_republish.core.resolver import VersionCompatibilityResolver, as_gradle_version
from gradle_republish.models.artifacts import ArtifactDescriptor, PublishResult
from gradle_republish.models.compatibility import CompatibilityProfile
from gradle_republish.models.credentials import (
    Credentials,
    RemoteRepositoryTarget,
    RepositoryTarget,
)
from gradle_republish.models.versioning import GradleVersion
from gradle_republish.providers.distributions import DistributionSource, HttpDistributionSource

logger = logging.getLogger(__name__)


class RepublishReport(BaseModel):
    """Everything one republish run produced."""

    model_config = ConfigDict(frozen=True)

    version: str
    profile: CompatibilityProfile
    artifacts: tuple[ArtifactDescriptor, ...]
    result: PublishResult

    @property
    def ok(self) -> bool:
        return self.result.ok


class Republisher:
    """Republish logical artifacts of Gradle distributions.

    Parameters
    ----------
    extractor:
        Produces artifact descriptors from distributions.
    publisher:
        Stores descriptors in repository targets.
    resolver:
        Shared compatibility resolver.
    license_name, license_url:
        License block written into every generated POM.
    """

    def __init__(
        self,
        extractor: DistributionExtractor,
        publisher: RepositoryPublisher,
        *,
        resolver: VersionCompatibilityResolver | None = None,
        license_name: str | None = None,
        license_url: str | None = None,
    ) -> None:
        self._extractor = extractor
        self._publisher = publisher
        self._resolver = resolver or VersionCompatibilityResolver()
        self._license_name = license_name
        self._license_url = license_url

    @classmethod
    def from_config(
        cls,
        settings: RepublishConfig | None = None,
        *,
        source: DistributionSource | None = None,
    ) -> Republisher:
        """Build a republisher from :class:`~gradle_republish.config.RepublishConfig`.

        *source* replaces the HTTP distribution source, e.g. with a
        :class:`~gradle_republish.providers.distributions.LocalDistributionSource`.
        """
        settings = settings or config

        resolver = VersionCompatibilityResolver()
        source = source or HttpDistributionSource(
            settings.distribution_base_url,
            settings.snapshot_distribution_base_url,
            timeout=settings.request_timeout_seconds,
        )
        extractor = DistributionExtractor(
            settings.cache_dir,
            source,
            resolver=resolver,
            rules=LayoutRules(),
            group=settings.publish_group,
            distribution_type=settings.distribution_type,
            lock_timeout=settings.extraction_lock_timeout_seconds,
        )
        credentials = CredentialResolver([
            environment_source(),
            properties_file_source(settings.properties_file),
            property_source(
                lambda: {
                    "username": settings.repository_username,
                    "password": settings.repository_password.get_secret_value(),
                },
                "username",
                "password",
                name="config",
            ),
        ])
        publisher = RepositoryPublisher(
            credentials,
            transport_factory=lambda target, creds: default_transport_factory(
                target, creds, timeout=settings.request_timeout_seconds
            ),
            max_workers=settings.publish_workers,
        )
        return cls(
            extractor,
            publisher,
            resolver=resolver,
            license_name=settings.license_name,
            license_url=settings.license_url,
        )

    @property
    def extractor(self) -> DistributionExtractor:
        return self._extractor

    @property
    def publisher(self) -> RepositoryPublisher:
        return self._publisher

    def republish(
        self,
        version: GradleVersion | str,
        artifacts: Iterable[str],
        target: RepositoryTarget,
        *,
        credentials: Credentials | None = None,
        overwrite: bool = False,
        with_bom: bool = True,
        expected_sha256: str | None = None,
    ) -> RepublishReport:
        """Extract *artifacts* of *version* and publish them into *target*.

        *credentials* override those of a remote target for this call only.
        """
        gradle_version = as_gradle_version(version)
        profile = self._resolver.resolve(gradle_version)
        extracted = self._extractor.extract(gradle_version, artifacts, expected_sha256=expected_sha256)

        if credentials is not None and isinstance(target, RemoteRepositoryTarget):
            target = target.model_copy(update={"credentials": credentials})

        with tempfile.TemporaryDirectory(prefix="gradle-republish-poms-") as pom_dir:
            poms = self._poms(gradle_version, extracted, Path(pom_dir), with_bom=with_bom)
            result = self._publisher.publish([*extracted, *poms], target, overwrite=overwrite)

        ordered = tuple(sorted(extracted, key=lambda d: d.coordinates))
        logger.info(
            "Republished Gradle %s (%d artifacts) to %s: %s",
            gradle_version, len(ordered), result.target, "ok" if result.ok else "with failures",
        )
        return RepublishReport(
            version=gradle_version.version, profile=profile, artifacts=ordered, result=result
        )

    def _poms(
        self,
        version: GradleVersion,
        extracted: Iterable[ArtifactDescriptor],
        directory: Path,
        *,
        with_bom: bool,
    ) -> list[ArtifactDescriptor]:
        main_jars = sorted(
            (d for d in extracted if d.classifier is None and d.extension == "jar"),
            key=lambda d: d.coordinates,
        )
        poms = [
            write_pom(
                render_artifact_pom(
                    jar,
                    license_name=self._license_name,
                    license_url=self._license_url,
                    import_bom=with_bom,
                ),
                jar.group,
                jar.name,
                jar.version,
                directory,
                jar.logical_artifact,
            )
            for jar in main_jars
        ]
        if with_bom and main_jars:
            group = main_jars[0].group
            bom = render_bom(
                group,
                version.version,
                main_jars,
                license_name=self._license_name,
                license_url=self._license_url,
            )
            poms.append(write_pom(bom, group, BOM_NAME, version.version, directory, "bom"))
        return poms
