"""gradle-republish data models — all Pydantic v2, all frozen (immutable)."""

from gradle_republish.models.artifacts import (
    ArtifactDescriptor,
    ArtifactOutcome,
    FailureKind,
    LibraryDependency,
    PublishResult,
    PublishStatus,
    RepositoryEntry,
)
from gradle_republish.models.compatibility import (
    CompatibilityProfile,
    ExecutionConfig,
    JvmThreshold,
    RuntimeFlagRule,
)
from gradle_republish.models.credentials import (
    Credentials,
    LocalRepositoryTarget,
    RemoteRepositoryTarget,
    RepositoryTarget,
    target_from_location,
)
from gradle_republish.models.versioning import GradleVersion

__all__ = [
    # versioning
    "GradleVersion",
    # compatibility
    "JvmThreshold",
    "RuntimeFlagRule",
    "CompatibilityProfile",
    "ExecutionConfig",
    # artifacts
    "ArtifactDescriptor",
    "LibraryDependency",
    "RepositoryEntry",
    "PublishStatus",
    "FailureKind",
    "ArtifactOutcome",
    "PublishResult",
    # credentials
    "Credentials",
    "LocalRepositoryTarget",
    "RemoteRepositoryTarget",
    "RepositoryTarget",
    "target_from_location",
]
