"""Repository publisher — idempotent publication of artifact descriptors.

For each artifact:

- identical coordinates and fingerprint already stored -> ``skipped-identical``
- coordinates stored with a different fingerprint -> ``failed`` with a
  :class:`CoordinateCollision` reason, unless ``overwrite=True``
- otherwise the payload and its checksum sidecars are written

Writes serialize per (target, coordinate): the first writer wins, later
identical writes are no-ops and later differing writes fail.  Different
coordinates publish concurrently.  Failures are reported per artifact and
never abort the batch; the publisher performs no retries.
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from gradle_republish.core.credentials import CredentialResolver
from gradle_republish.core.errors import CoordinateCollision
from gradle_republish.core.hasher import CHECKSUM_ALGORITHMS, file_digests, parse_checksum
from gradle_republish.models.artifacts import (
    ArtifactDescriptor,
    ArtifactOutcome,
    FailureKind,
    PublishResult,
    PublishStatus,
)
from gradle_republish.models.credentials import (
    Credentials,
    LocalRepositoryTarget,
    RemoteRepositoryTarget,
    RepositoryTarget,
)
from gradle_republish.providers.repositories import (
    EntryExists,
    HttpTransport,
    LocalFileTransport,
    RepositoryTransport,
    TransportError,
)

logger = logging.getLogger(__name__)

TransportFactory = Callable[[RepositoryTarget, Optional[Credentials]], RepositoryTransport]

# Shared by every publisher in the process so racing publishers serialize too.
# Entries live only while some publisher holds a reference to the lock.
_COORDINATE_LOCKS: weakref.WeakValueDictionary[tuple[str, str], threading.Lock] = weakref.WeakValueDictionary()
_COORDINATE_LOCKS_GUARD = threading.Lock()


def _coordinate_lock(target: str, path: str) -> threading.Lock:
    with _COORDINATE_LOCKS_GUARD:
        lock = _COORDINATE_LOCKS.get((target, path))
        if lock is None:
            lock = _COORDINATE_LOCKS[(target, path)] = threading.Lock()
        return lock


def default_transport_factory(
    target: RepositoryTarget, credentials: Credentials | None, *, timeout: float = 30.0
) -> RepositoryTransport:
    if isinstance(target, LocalRepositoryTarget):
        return LocalFileTransport(target.root)
    return HttpTransport(target.base_url, credentials, timeout=timeout)


class RepositoryPublisher:
    """Publish artifact descriptors into a repository target.

    Parameters
    ----------
    credential_resolver:
        Fallback chain consulted for remote targets; explicit target
        credentials always win.
    transport_factory:
        Builds the transport for a target and the resolved credentials.
    max_workers:
        Upper bound on concurrently published coordinates.
    """

    def __init__(
        self,
        credential_resolver: CredentialResolver | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        max_workers: int = 4,
    ) -> None:
        self._credentials = credential_resolver or CredentialResolver()
        self._transport_factory = transport_factory or default_transport_factory
        self._max_workers = max(1, max_workers)

    def transport_for(self, target: RepositoryTarget) -> RepositoryTransport:
        credentials = None
        if isinstance(target, RemoteRepositoryTarget):
            credentials = self._credentials.resolve(target.credentials)
        return self._transport_factory(target, credentials)

    def publish(
        self,
        artifacts: Iterable[ArtifactDescriptor],
        target: RepositoryTarget,
        *,
        overwrite: bool = False,
    ) -> PublishResult:
        """Publish *artifacts* into *target* and report one outcome per artifact."""
        ordered = sorted(set(artifacts), key=lambda d: d.coordinates)
        transport = self.transport_for(target)
        target_key = target.display

        if len(ordered) <= 1 or self._max_workers == 1:
            outcomes = [self._publish_one(transport, target_key, d, overwrite) for d in ordered]
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                outcomes = list(pool.map(
                    lambda d: self._publish_one(transport, target_key, d, overwrite), ordered
                ))

        result = PublishResult(target=target_key, outcomes=tuple(outcomes))
        logger.info(
            "Published to %s: %d published, %d skipped, %d failed",
            target_key, len(result.published), len(result.skipped), len(result.failed),
        )
        return result

    def _publish_one(
        self,
        transport: RepositoryTransport,
        target_key: str,
        descriptor: ArtifactDescriptor,
        overwrite: bool,
    ) -> ArtifactOutcome:
        path = descriptor.repository_path
        try:
            with _coordinate_lock(target_key, path):
                try:
                    return self._publish_locked(transport, descriptor, path, overwrite)
                except EntryExists:
                    # Lost an exclusive-create race to another process
                    return self._recheck(transport, descriptor, path)
        except TransportError as exc:
            logger.warning("Could not publish %s: %s", descriptor.coordinates, exc)
            return ArtifactOutcome(
                descriptor=descriptor,
                status=PublishStatus.FAILED,
                reason=str(exc),
                failure_kind=exc.kind,
                retryable=exc.retryable,
            )
        except OSError as exc:
            logger.warning("Could not publish %s: %s", descriptor.coordinates, exc)
            return ArtifactOutcome(
                descriptor=descriptor,
                status=PublishStatus.FAILED,
                reason=str(exc),
                failure_kind=FailureKind.IO,
            )

    def _publish_locked(
        self,
        transport: RepositoryTransport,
        descriptor: ArtifactDescriptor,
        path: str,
        overwrite: bool,
    ) -> ArtifactOutcome:
        existing = transport.read_checksum(path)
        if existing is not None:
            if existing == descriptor.sha256:
                logger.info("%s already published", descriptor.coordinates)
                return ArtifactOutcome(
                    descriptor=descriptor, status=PublishStatus.SKIPPED_IDENTICAL, location=path
                )
            if not overwrite:
                return self._collision(descriptor, existing)
            logger.warning("Overwriting %s (was sha256:%s)", descriptor.coordinates, existing)

        payload = descriptor.payload_path
        if payload is None or not Path(payload).is_file():
            return ArtifactOutcome(
                descriptor=descriptor,
                status=PublishStatus.FAILED,
                reason=f"No payload available for {descriptor.coordinates}",
                failure_kind=FailureKind.IO,
            )
        checksums = file_digests(Path(payload))
        if checksums["sha256"] != descriptor.sha256:
            return ArtifactOutcome(
                descriptor=descriptor,
                status=PublishStatus.FAILED,
                reason=(
                    f"Payload of {descriptor.coordinates} does not match its fingerprint "
                    f"{descriptor.fingerprint}"
                ),
                failure_kind=FailureKind.INTEGRITY,
            )

        location = transport.put(path, Path(payload), checksums, overwrite=existing is not None)
        return ArtifactOutcome(descriptor=descriptor, status=PublishStatus.PUBLISHED, location=location)

    def _recheck(
        self, transport: RepositoryTransport, descriptor: ArtifactDescriptor, path: str
    ) -> ArtifactOutcome:
        existing = transport.read_checksum(path)
        if existing == descriptor.sha256:
            return ArtifactOutcome(
                descriptor=descriptor, status=PublishStatus.SKIPPED_IDENTICAL, location=path
            )
        return self._collision(descriptor, existing or "")

    @staticmethod
    def _collision(descriptor: ArtifactDescriptor, existing: str) -> ArtifactOutcome:
        error = CoordinateCollision(
            f"{descriptor.coordinates} is already published with sha256:{existing}, "
            f"refusing to replace it with {descriptor.fingerprint}"
        )
        logger.error("%s", error)
        return ArtifactOutcome(
            descriptor=descriptor,
            status=PublishStatus.FAILED,
            reason=str(error),
            failure_kind=FailureKind.COLLISION,
            retryable=CoordinateCollision.retryable,
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    @staticmethod
    def verify(root: Path) -> list[str]:
        """Re-hash every payload of a local repository against its sidecars.

        Returns a list of problem descriptions; an empty list means the
        repository is consistent.
        """
        problems: list[str] = []
        transport = LocalFileTransport(root)
        for relative, payload in transport.iter_payloads():
            actual = file_digests(payload)
            for algorithm, suffix in CHECKSUM_ALGORITHMS.items():
                sidecar = payload.with_name(payload.name + suffix)
                if not sidecar.is_file():
                    problems.append(f"{relative}: missing {suffix} checksum")
                    continue
                recorded = parse_checksum(sidecar.read_text(encoding="utf-8"))
                if recorded != actual[algorithm]:
                    problems.append(f"{relative}: {algorithm} mismatch (recorded {recorded}, actual {actual[algorithm]})")
        return problems
