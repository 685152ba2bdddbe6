"""Error taxonomy for resolution, extraction, publishing and planning.

Every error carries a class-level ``retryable`` flag so callers (the host
build orchestrator, the CLI) can decide whether to apply their own backoff
policy.  The engine itself never retries.
"""

from __future__ import annotations


class RepublishError(RuntimeError):
    """Base class for all engine errors."""

    retryable: bool = False


class InvalidVersionFormat(RepublishError, ValueError):
    """Raised when a version string cannot be parsed into (major, minor, patch[, qualifier])."""


class DistributionUnavailable(RepublishError):
    """Raised when the distribution source cannot provide a distribution.

    Covers both "not found" and transient network failures.  Retryable.
    """

    retryable = True


class LayoutMismatch(RepublishError):
    """Raised when a distribution does not contain an expected internal artifact.

    Indicates the extraction rule table needs a new row for this version range.
    """


class ChecksumMismatch(RepublishError):
    """Raised when downloaded or extracted bytes do not match a declared digest."""


class CoordinateCollision(RepublishError):
    """Raised when coordinates already exist in a repository with a different fingerprint."""


class ToolchainUnavailable(RepublishError):
    """Raised when no JVM of the exact required feature level can be provisioned."""
