"""Credential resolution — an ordered, short-circuiting chain of suppliers.

Resolution order (first non-blank pair wins):

1. Explicit per-invocation credentials.
2. Named property sources, in the order given (by default: process
   environment variables, then a ``gradle.properties``-style mapping, then
   the settings of :class:`~gradle_republish.config.RepublishConfig`).
3. Anonymous (``None``).

Suppliers are evaluated lazily; a supplier after the first success is
never called.  Falling back to anonymous is logged at WARNING because it
changes what a publish is allowed to do.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Optional

from gradle_republish.models.credentials import Credentials

logger = logging.getLogger(__name__)

CredentialSupplier = Callable[[], Optional[Credentials]]

DEFAULT_USERNAME_PROPERTY = "GRADLE_REPUBLISH_REPOSITORY_USERNAME"
DEFAULT_PASSWORD_PROPERTY = "GRADLE_REPUBLISH_REPOSITORY_PASSWORD"


def _non_blank(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def explicit_source(
    username: str | None, password: str | None, *, name: str = "explicit"
) -> CredentialSupplier:
    """Supplier for credentials passed directly to one invocation."""

    def _supply() -> Credentials | None:
        user, pwd = _non_blank(username), _non_blank(password)
        if user is None or pwd is None:
            return None
        return Credentials(username=user, password=pwd, source=name)

    return _supply


def property_source(
    properties: Mapping[str, object] | Callable[[], Mapping[str, object]],
    username_key: str = DEFAULT_USERNAME_PROPERTY,
    password_key: str = DEFAULT_PASSWORD_PROPERTY,
    *,
    name: str = "properties",
) -> CredentialSupplier:
    """Supplier reading a named username/password pair from a mapping.

    *properties* may be a callable so the mapping is only materialized when
    the supplier is actually reached.
    """

    def _supply() -> Credentials | None:
        mapping = properties() if callable(properties) else properties
        user = _non_blank(mapping.get(username_key))
        pwd = _non_blank(mapping.get(password_key))
        if user is None or pwd is None:
            return None
        return Credentials(username=user, password=pwd, source=f"{name}:{username_key}")

    return _supply


def environment_source(
    username_var: str = DEFAULT_USERNAME_PROPERTY,
    password_var: str = DEFAULT_PASSWORD_PROPERTY,
) -> CredentialSupplier:
    """Supplier reading environment variables at resolution time."""
    return property_source(lambda: os.environ, username_var, password_var, name="env")


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java ``.properties`` text (``key=value`` / ``key: value`` lines)."""
    result: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(("#", "!")):
            continue
        separators = [i for i in (line.find("="), line.find(":")) if i >= 0]
        if not separators:
            result[line] = ""
            continue
        idx = min(separators)
        result[line[:idx].strip()] = line[idx + 1:].strip()
    return result


def read_properties_file(path: Path) -> dict[str, str]:
    """Parse a Java ``.properties`` file; a missing file reads as empty."""
    if not path.is_file():
        return {}
    return parse_properties(path.read_text(encoding="utf-8"))


def properties_file_source(
    path: Path,
    username_key: str = "gradleRepublishUsername",
    password_key: str = "gradleRepublishPassword",
) -> CredentialSupplier:
    """Supplier reading a ``gradle.properties``-style file, lazily."""
    return property_source(
        lambda: read_properties_file(path), username_key, password_key, name=f"file:{path}"
    )


class CredentialResolver:
    """Evaluate suppliers in order and return the first non-blank pair."""

    def __init__(self, suppliers: Iterable[CredentialSupplier] = ()) -> None:
        self._suppliers = list(suppliers)

    def resolve(self, explicit: Credentials | None = None) -> Credentials | None:
        """Resolve credentials; *explicit* always takes precedence."""
        if explicit is not None and _non_blank(explicit.username) and _non_blank(
            explicit.password.get_secret_value()
        ):
            logger.debug("Using explicit credentials from %s", explicit.source)
            return explicit

        for supplier in self._suppliers:
            credentials = supplier()
            if credentials is not None:
                logger.debug("Using credentials from %s", credentials.source)
                return credentials

        logger.warning("No credentials resolved; publishing anonymously")
        return None
