"""Distribution sources — where Gradle distribution zips come from.

The extractor depends only on the :class:`DistributionSource` Protocol:
given a version and a distribution type, write the distribution zip to a
destination path and return its declared SHA-256 digest (or ``None`` when
the source declares none).  Every failure is surfaced as
:class:`~gradle_republish.core.errors.DistributionUnavailable`.

Two backends are provided:

1. :class:`HttpDistributionSource` — ``services.gradle.org`` (or a mirror)
   via requests, reading the published ``.sha256`` sidecar.
2. :class:`LocalDistributionSource` — a directory of pre-downloaded zips.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

import requests

from gradle_republish.core.errors import DistributionUnavailable
from gradle_republish.core.hasher import parse_checksum
from gradle_republish.models.versioning import GradleVersion

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://services.gradle.org/distributions"
DEFAULT_SNAPSHOT_BASE_URL = "https://services.gradle.org/distributions-snapshots"


def distribution_file_name(version: GradleVersion, distribution_type: str) -> str:
    return f"gradle-{version.version}-{distribution_type}.zip"


@runtime_checkable
class DistributionSource(Protocol):
    """Protocol for distribution sources."""

    def fetch(
        self, version: GradleVersion, distribution_type: str, destination: Path
    ) -> str | None:
        """Write the distribution zip to *destination*.

        Returns
        -------
        str | None
            The declared SHA-256 hex digest, if the source publishes one.

        Raises
        ------
        DistributionUnavailable
            On not-found or any transport failure.
        """
        ...


class HttpDistributionSource:
    """Fetch distributions over HTTP(S).

    Parameters
    ----------
    base_url:
        Location of release distributions.
    snapshot_base_url:
        Location of nightly/snapshot distributions.
    timeout:
        Per-request timeout in seconds.
    session:
        Optional pre-configured ``requests.Session``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        snapshot_base_url: str = DEFAULT_SNAPSHOT_BASE_URL,
        *,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._snapshot_base_url = snapshot_base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def url_for(self, version: GradleVersion, distribution_type: str) -> str:
        base = self._snapshot_base_url if version.is_snapshot else self._base_url
        return f"{base}/{distribution_file_name(version, distribution_type)}"

    def fetch(
        self, version: GradleVersion, distribution_type: str, destination: Path
    ) -> str | None:
        url = self.url_for(version, distribution_type)
        logger.info("Downloading %s", url)
        try:
            with self._session.get(url, stream=True, timeout=self._timeout) as response:
                if response.status_code == 404:
                    raise DistributionUnavailable(f"Gradle distribution not found: {url}")
                if response.status_code >= 400:
                    raise DistributionUnavailable(
                        f"Could not download {url}: HTTP {response.status_code}"
                    )
                with open(destination, "wb") as out:
                    for chunk in response.iter_content(chunk_size=1024 * 1024):
                        if chunk:
                            out.write(chunk)
        except requests.RequestException as exc:
            raise DistributionUnavailable(f"Could not download {url}: {exc}") from exc

        return self._declared_sha256(url)

    def _declared_sha256(self, url: str) -> str | None:
        try:
            response = self._session.get(f"{url}.sha256", timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("Could not read checksum of %s: %s", url, exc)
            return None
        if response.status_code != 200:
            logger.debug("No checksum published for %s (HTTP %d)", url, response.status_code)
            return None
        return parse_checksum(response.text) or None


class LocalDistributionSource:
    """Serve distributions from a local directory.

    A ``bin`` request is satisfied by an ``all`` zip when only the latter
    exists, since the full distribution is a superset.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def _locate(self, version: GradleVersion, distribution_type: str) -> Path:
        candidates = [distribution_type]
        if distribution_type == "bin":
            candidates.append("all")
        for candidate in candidates:
            path = self._directory / distribution_file_name(version, candidate)
            if path.is_file():
                return path
        raise DistributionUnavailable(
            f"Gradle distribution not found in {self._directory}: "
            f"{distribution_file_name(version, distribution_type)}"
        )

    def fetch(
        self, version: GradleVersion, distribution_type: str, destination: Path
    ) -> str | None:
        source = self._locate(version, distribution_type)
        try:
            shutil.copyfile(source, destination)
        except OSError as exc:
            raise DistributionUnavailable(f"Could not copy {source}: {exc}") from exc
        sidecar = source.with_name(source.name + ".sha256")
        if sidecar.is_file():
            return parse_checksum(sidecar.read_text(encoding="utf-8")) or None
        return None
