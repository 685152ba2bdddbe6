"""Artifact models — descriptors, repository entries and publish outcomes.

Descriptors are immutable once created.  The ``fingerprint`` is the
content address of the payload (``sha256:<hex>``) and is both the identity
check used for idempotent re-publication and the integrity check.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict


class LibraryDependency(BaseModel):
    """Maven coordinates of a third-party library a republished jar needs."""

    model_config = ConfigDict(frozen=True)

    group: str
    name: str
    version: str
    bom: str | None = None  # artifact id of a BOM in the same group and version

    @property
    def coordinates(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"


class ArtifactDescriptor(BaseModel):
    """Coordinates plus fingerprint of a single republished unit."""

    model_config = ConfigDict(frozen=True)

    group: str
    name: str
    version: str
    classifier: str | None = None
    extension: str = "jar"
    fingerprint: str  # "sha256:<hex>"
    size_bytes: int = 0
    logical_artifact: str = ""
    dependencies: tuple[LibraryDependency, ...] = ()
    payload_path: Path | None = None  # transient working copy, not part of identity

    @property
    def coordinates(self) -> str:
        """``group:name:version[:classifier]@extension``."""
        coords = f"{self.group}:{self.name}:{self.version}"
        if self.classifier:
            coords += f":{self.classifier}"
        return f"{coords}@{self.extension}"

    @property
    def file_name(self) -> str:
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.name}-{self.version}{suffix}.{self.extension}"

    @property
    def repository_path(self) -> str:
        """Standard Maven layout path, relative to a repository root."""
        return "/".join([*self.group.split("."), self.name, self.version, self.file_name])

    @property
    def sha256(self) -> str:
        return self.fingerprint.removeprefix("sha256:")


class RepositoryEntry(BaseModel):
    """A descriptor plus its stored payload location inside a repository."""

    model_config = ConfigDict(frozen=True)

    descriptor: ArtifactDescriptor
    location: str


class PublishStatus(str, Enum):
    PUBLISHED = "published"
    SKIPPED_IDENTICAL = "skipped-identical"
    FAILED = "failed"


class FailureKind(str, Enum):
    COLLISION = "collision"
    NETWORK = "network"
    AUTH = "auth"
    INTEGRITY = "integrity"
    IO = "io"


class ArtifactOutcome(BaseModel):
    """Result of publishing one artifact."""

    model_config = ConfigDict(frozen=True)

    descriptor: ArtifactDescriptor
    status: PublishStatus
    location: str = ""
    reason: str = ""
    failure_kind: FailureKind | None = None
    retryable: bool = False


class PublishResult(BaseModel):
    """Per-artifact outcomes of a publish batch.

    A batch never aborts on the first failure; callers decide whether a
    partial success is acceptable.
    """

    model_config = ConfigDict(frozen=True)

    target: str
    outcomes: tuple[ArtifactOutcome, ...] = ()

    def _with_status(self, status: PublishStatus) -> list[ArtifactOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def published(self) -> list[ArtifactOutcome]:
        return self._with_status(PublishStatus.PUBLISHED)

    @property
    def skipped(self) -> list[ArtifactOutcome]:
        return self._with_status(PublishStatus.SKIPPED_IDENTICAL)

    @property
    def failed(self) -> list[ArtifactOutcome]:
        return self._with_status(PublishStatus.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def retryable(self) -> bool:
        """True when every failure in the batch is retryable."""
        failed = self.failed
        return bool(failed) and all(o.retryable for o in failed)

    def outcome_for(self, coordinates: str) -> ArtifactOutcome | None:
        for outcome in self.outcomes:
            if outcome.descriptor.coordinates == coordinates:
                return outcome
        return None
