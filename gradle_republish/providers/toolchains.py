"""JVM provisioning — locating a Java installation of a given feature level.

The planner depends only on the :class:`JvmProvisioner` Protocol: given a
feature level, return a usable installation or ``None``.

:class:`LocalJvmProvisioner` discovers installations from, in order:

1. explicitly configured JDK homes,
2. ``JAVA_HOME_<level>_<arch>`` / ``JDK_<level>`` variables (the layout
   used by hosted CI runners),
3. ``JAVA_HOME``.

Each candidate home must contain a ``release`` file whose ``JAVA_VERSION``
determines its feature level.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

_LEVEL_VARIABLE = re.compile(r"^(?:JAVA_HOME_(?P<a>\d+)(?:_[A-Z0-9]+)?|JDK_(?P<b>\d+))$")
_JAVA_VERSION_LINE = re.compile(r'^JAVA_VERSION\s*=\s*"?(?P<version>[^"\s]+)"?\s*$', re.MULTILINE)


class JvmInstallation(BaseModel):
    """A discovered Java installation."""

    model_config = ConfigDict(frozen=True)

    home: Path
    feature_level: int
    version: str

    @property
    def java_executable(self) -> Path:
        return self.home / "bin" / "java"


def feature_level_of(java_version: str) -> int:
    """``1.8.0_392`` -> 8, ``17.0.9`` -> 17, ``21`` -> 21."""
    parts = re.split(r"[._+\-]", java_version)
    if parts[0] == "1" and len(parts) > 1:
        return int(parts[1])
    return int(parts[0])


def read_installation(home: Path) -> JvmInstallation | None:
    """Describe the installation at *home*, or ``None`` if it is not a JDK/JRE."""
    release = Path(home) / "release"
    if not release.is_file():
        return None
    match = _JAVA_VERSION_LINE.search(release.read_text(encoding="utf-8", errors="replace"))
    if match is None:
        return None
    version = match.group("version")
    try:
        level = feature_level_of(version)
    except ValueError:
        logger.debug("Unrecognized JAVA_VERSION %r in %s", version, release)
        return None
    return JvmInstallation(home=Path(home), feature_level=level, version=version)


@runtime_checkable
class JvmProvisioner(Protocol):
    """Protocol for JVM provisioning services."""

    def provision(self, feature_level: int) -> JvmInstallation | None:
        """Return an installation of exactly *feature_level*, or ``None``."""
        ...


class LocalJvmProvisioner:
    """Discover installations on the local machine.

    Parameters
    ----------
    homes:
        Explicit JDK homes, searched first.
    environ:
        Environment mapping (defaults to ``os.environ``).
    """

    def __init__(self, homes: Iterable[Path] = (), environ: Mapping[str, str] | None = None) -> None:
        self._homes = [Path(h) for h in homes]
        self._environ = environ if environ is not None else os.environ

    def candidate_homes(self) -> list[Path]:
        candidates = list(self._homes)
        for name in sorted(self._environ):
            if _LEVEL_VARIABLE.match(name) and self._environ[name]:
                candidates.append(Path(self._environ[name]))
        java_home = self._environ.get("JAVA_HOME")
        if java_home:
            candidates.append(Path(java_home))
        return list(dict.fromkeys(candidates))

    def discover(self) -> list[JvmInstallation]:
        installations = []
        for home in self.candidate_homes():
            installation = read_installation(home)
            if installation is not None:
                installations.append(installation)
        return installations

    def provision(self, feature_level: int) -> JvmInstallation | None:
        for installation in self.discover():
            if installation.feature_level == feature_level:
                logger.debug("Provisioned JVM %d at %s", feature_level, installation.home)
                return installation
        return None
