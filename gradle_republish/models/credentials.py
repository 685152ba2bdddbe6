"""Credential and repository-target models."""

from __future__ import annotations

from pathlib import Path
from typing import Union
from urllib.parse import urlparse
from urllib.request import url2pathname

from pydantic import BaseModel, ConfigDict, SecretStr


class Credentials(BaseModel):
    """A (username, password) pair and the name of the source that supplied it."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr
    source: str = "explicit"

    def basic_auth(self) -> tuple[str, str]:
        return self.username, self.password.get_secret_value()


class LocalRepositoryTarget(BaseModel):
    """A Maven-layout repository on the local filesystem."""

    model_config = ConfigDict(frozen=True)

    root: Path

    @property
    def display(self) -> str:
        return str(self.root)


class RemoteRepositoryTarget(BaseModel):
    """A remote Maven registry reachable over HTTP(S)."""

    model_config = ConfigDict(frozen=True)

    url: str
    credentials: Credentials | None = None

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")

    @property
    def display(self) -> str:
        return self.base_url


RepositoryTarget = Union[LocalRepositoryTarget, RemoteRepositoryTarget]


def target_from_location(location: str | Path, credentials: Credentials | None = None) -> RepositoryTarget:
    """Build a target from a filesystem path, a ``file:`` URL or an ``http(s):`` URL."""
    if isinstance(location, Path):
        return LocalRepositoryTarget(root=location)
    parsed = urlparse(location)
    if parsed.scheme in ("http", "https"):
        return RemoteRepositoryTarget(url=location, credentials=credentials)
    if parsed.scheme == "file":
        return LocalRepositoryTarget(root=Path(url2pathname(parsed.path)))
    return LocalRepositoryTarget(root=Path(location))
