"""Gradle version model — parsing, base versions and ordering."""

from __future__ import annotations

import re
from functools import total_ordering

from pydantic import BaseModel, ConfigDict

from gradle_republish.core.errors import InvalidVersionFormat

_VERSION_PATTERN = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)(?:\.(?P<patch>\d+))?"
    r"(?:-(?P<qualifier>[0-9A-Za-z][0-9A-Za-z.+\-]*))?$"
)


@total_ordering
class GradleVersion(BaseModel):
    """A normalized Gradle release string.

    Equality and hashing use the full identity (qualifier included), so
    ``6.0-rc-1`` and ``6.0`` are distinct cache keys.  Compatibility
    decisions must go through :attr:`base_version` / :attr:`base_key`.

    Ordering follows Gradle: base version first, then any qualified build
    (rc, milestone, nightly) sorts before the final release of that base.
    """

    model_config = ConfigDict(frozen=True)

    major: int
    minor: int
    patch: int = 0
    qualifier: str | None = None
    raw: str = ""

    @classmethod
    def parse(cls, version: str) -> GradleVersion:
        """Parse ``MAJOR.MINOR[.PATCH][-QUALIFIER]``.

        Raises
        ------
        InvalidVersionFormat
            If *version* does not match the expected shape.
        """
        if not isinstance(version, str):
            raise InvalidVersionFormat(f"Gradle version must be a string: {version!r}")
        text = version.strip()
        match = _VERSION_PATTERN.match(text)
        if match is None:
            raise InvalidVersionFormat(f"Invalid Gradle version: {version!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch") or 0),
            qualifier=match.group("qualifier"),
            raw=text,
        )

    @property
    def version(self) -> str:
        """The canonical version string, used as the published artifact version."""
        if self.raw:
            return self.raw
        text = f"{self.major}.{self.minor}"
        if self.patch:
            text += f".{self.patch}"
        if self.qualifier:
            text += f"-{self.qualifier}"
        return text

    @property
    def base_key(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    @property
    def base_version(self) -> GradleVersion:
        """This version with its qualifier stripped."""
        if self.qualifier is None:
            return self
        text = f"{self.major}.{self.minor}"
        if self.patch:
            text += f".{self.patch}"
        return GradleVersion(major=self.major, minor=self.minor, patch=self.patch, raw=text)

    @property
    def is_snapshot(self) -> bool:
        """Nightly/snapshot builds carry a numeric timestamp qualifier."""
        return bool(self.qualifier) and (
            self.qualifier[0].isdigit() or self.qualifier.upper().endswith("SNAPSHOT")
        )

    @property
    def is_prerelease(self) -> bool:
        return self.qualifier is not None

    def compare_base(self, other: GradleVersion) -> int:
        """Three-way comparison on base versions only."""
        if self.base_key < other.base_key:
            return -1
        if self.base_key > other.base_key:
            return 1
        return 0

    def _sort_key(self) -> tuple:
        # Final releases sort after any qualified build of the same base.
        # The spelling breaks ties so ordering agrees with equality (9.0 < 9.0.0).
        spelling = (self.raw, self.qualifier or "")
        if self.qualifier is None:
            return (self.base_key, 1, (), spelling)
        parts = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part.lower())
            for part in re.split(r"[.\-+]", self.qualifier)
        )
        return (self.base_key, 0, parts, spelling)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, GradleVersion):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        return self.version
