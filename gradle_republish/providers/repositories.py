"""Repository transports — how payloads reach a local or remote repository.

The publisher depends only on the :class:`RepositoryTransport` Protocol:

- ``read_checksum(path)`` returns the SHA-256 of the entry stored at a
  repository-relative path, or ``None`` when nothing is stored there.
- ``put(path, source, checksums, overwrite=...)`` stores a payload and its
  checksum sidecars.

Two backends are provided:

1. :class:`LocalFileTransport` — Maven layout on disk.  Payloads are
   written to a temporary file next to the destination and committed with
   an exclusive hard link (first writer wins) or ``os.replace`` when
   overwriting.
2. :class:`HttpTransport` — HEAD/GET/PUT against a Maven-compatible HTTP
   repository via requests, with HTTP Basic authentication.

Transports never retry; failures are raised as :class:`TransportError`
carrying a failure kind and a retryable flag.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

import requests

from gradle_republish.core.hasher import CHECKSUM_ALGORITHMS, file_digest, parse_checksum, sha256_hex
from gradle_republish.models.artifacts import FailureKind
from gradle_republish.models.credentials import Credentials

logger = logging.getLogger(__name__)

# HTTP statuses worth retrying by the caller
RETRYABLE_STATUS_CODES = frozenset({408, 425, 429})


class TransportError(RuntimeError):
    """Raised when a transport-level operation fails."""

    def __init__(self, message: str, kind: FailureKind = FailureKind.IO, *, retryable: bool = False) -> None:
        super().__init__(message)
        self.kind = kind
        self.retryable = retryable


class EntryExists(TransportError):
    """Raised when an exclusive write loses the race to another writer."""

    def __init__(self, message: str) -> None:
        super().__init__(message, FailureKind.COLLISION)


@runtime_checkable
class RepositoryTransport(Protocol):
    """Protocol for repository backends."""

    def read_checksum(self, path: str) -> str | None:
        """Return the stored entry's SHA-256 hex digest, or ``None`` if absent."""
        ...

    def put(self, path: str, source: Path, checksums: dict[str, str], *, overwrite: bool = False) -> str:
        """Store *source* at *path* plus one sidecar per checksum; return its location."""
        ...


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


class LocalFileTransport:
    """Maven-layout repository rooted at a local directory."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        return self._root.joinpath(*path.split("/"))

    def read_checksum(self, path: str) -> str | None:
        payload = self._resolve(path)
        if not payload.is_file():
            return None
        sidecar = payload.with_name(payload.name + CHECKSUM_ALGORITHMS["sha256"])
        try:
            if sidecar.is_file():
                digest = parse_checksum(sidecar.read_text(encoding="utf-8"))
                if digest:
                    return digest
            return file_digest(payload)
        except OSError as exc:
            raise TransportError(f"Could not read {payload}: {exc}") from exc

    def put(self, path: str, source: Path, checksums: dict[str, str], *, overwrite: bool = False) -> str:
        destination = self._resolve(path)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            tmp_payload = self._copy_to_temp(source.read_bytes(), destination)
            try:
                self._commit(tmp_payload, destination, overwrite=overwrite)
            finally:
                tmp_payload.unlink(missing_ok=True)
            for algorithm, digest in checksums.items():
                sidecar = destination.with_name(destination.name + CHECKSUM_ALGORITHMS[algorithm])
                tmp_sidecar = self._copy_to_temp(digest.encode("ascii"), sidecar)
                os.replace(tmp_sidecar, sidecar)
        except TransportError:
            raise
        except OSError as exc:
            raise TransportError(f"Could not write {destination}: {exc}") from exc
        logger.info("Stored %s", destination)
        return str(destination)

    @staticmethod
    def _copy_to_temp(data: bytes, destination: Path) -> Path:
        fd, name = tempfile.mkstemp(dir=destination.parent, prefix=f".{destination.name}.", suffix=".part")
        with os.fdopen(fd, "wb") as out:
            out.write(data)
        return Path(name)

    @staticmethod
    def _commit(tmp_payload: Path, destination: Path, *, overwrite: bool) -> None:
        if overwrite:
            os.replace(tmp_payload, destination)
            return
        try:
            os.link(tmp_payload, destination)
        except FileExistsError as exc:
            raise EntryExists(f"{destination} was written concurrently") from exc
        except OSError:
            # Filesystems without hard links: fall back to a plain rename
            if destination.exists():
                raise EntryExists(f"{destination} was written concurrently")
            os.replace(tmp_payload, destination)

    def iter_payloads(self):
        """Yield (relative path, payload) for every non-sidecar file in the repository."""
        sidecar_suffixes = tuple(CHECKSUM_ALGORITHMS.values())
        if not self._root.is_dir():
            return
        for path in sorted(self._root.rglob("*")):
            if not path.is_file() or path.name.endswith(sidecar_suffixes) or path.name.startswith("."):
                continue
            yield path.relative_to(self._root).as_posix(), path


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class HttpTransport:
    """Maven-compatible HTTP repository.

    Parameters
    ----------
    base_url:
        Repository root URL.
    credentials:
        Optional HTTP Basic credentials; ``None`` publishes anonymously.
    timeout:
        Per-request timeout in seconds.
    session:
        Optional pre-configured ``requests.Session``.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials | None = None,
        *,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        auth = self._credentials.basic_auth() if self._credentials else None
        try:
            response = self._session.request(method, url, auth=auth, timeout=self._timeout, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(
                f"Could not {method} `{url}`: {exc}", FailureKind.NETWORK, retryable=True
            ) from exc

        status = response.status_code
        if status < 400 or (method in ("HEAD", "GET") and status == 404):
            return response
        if status in (401, 403):
            raise TransportError(
                f"Could not {method} `{url}`: HTTP {status} (check repository credentials)",
                FailureKind.AUTH,
                retryable=True,
            )
        if status == 409:
            # Release repositories answer a redeploy with Conflict
            raise EntryExists(f"Could not {method} `{url}`: HTTP 409 (already published)")
        retryable = status >= 500 or status in RETRYABLE_STATUS_CODES
        raise TransportError(
            f"Could not {method} `{url}`: HTTP {status} {response.text[:200]!r}",
            FailureKind.NETWORK if retryable else FailureKind.IO,
            retryable=retryable,
        )

    def read_checksum(self, path: str) -> str | None:
        url = self.url_for(path)
        head = self._request("HEAD", url)
        if head.status_code == 404:
            return None
        sidecar = self._request("GET", url + CHECKSUM_ALGORITHMS["sha256"])
        if sidecar.status_code == 200:
            digest = parse_checksum(sidecar.text)
            if digest:
                return digest
        payload = self._request("GET", url)
        if payload.status_code == 404:
            return None
        return sha256_hex(payload.content)

    def put(self, path: str, source: Path, checksums: dict[str, str], *, overwrite: bool = False) -> str:
        url = self.url_for(path)
        logger.info("Uploading %s", url)
        with open(source, "rb") as body:
            self._request("PUT", url, data=body, headers={"Content-Type": "application/octet-stream"})
        for algorithm, digest in checksums.items():
            self._request(
                "PUT",
                url + CHECKSUM_ALGORITHMS[algorithm],
                data=digest.encode("ascii"),
                headers={"Content-Type": "text/plain"},
            )
        return url
