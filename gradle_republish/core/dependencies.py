"""Third-party library dependencies of republished artifacts.

A Gradle distribution ships its libraries as plain jars under ``lib/`` and
``lib/plugins/``.  The Maven coordinates of each jar are inferred in order:

1. ``META-INF/maven/<group>/<name>/pom.properties`` inside the jar.
2. A table of well-known library name prefixes.
3. Version rules (Groovy moved to ``org.apache.groovy`` at 4.0) and
   content checks for ambiguous names (``annotations``, ``core``).

Jars that Gradle builds itself (``native-platform``, prebuilt Groovy,
snapshot builds) have no public coordinates and are skipped.  Libraries
whose group publishes a BOM carry that BOM so POMs can import it.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from collections.abc import Iterable

from gradle_republish.core.credentials import parse_properties
from gradle_republish.core.errors import LayoutMismatch
from gradle_republish.models.artifacts import LibraryDependency
from gradle_republish.models.versioning import GradleVersion

logger = logging.getLogger(__name__)

# Library name prefix -> Maven group, for jars without pom.properties
LIBRARY_GROUPS: dict[str, str] = {
    "kotlin": "org.jetbrains.kotlin",
    "ant": "org.apache.ant",
    "jspecify": "org.jspecify",
    "jsr305": "com.google.code.findbugs",
    "javax.inject": "javax.inject",
    "xml-apis": "xml-apis",
    "asm": "org.ow2.asm",
    "jarjar": "com.googlecode.jarjar",
    "jna": "net.java.dev.jna",
    "objenesis": "org.objenesis",
    "ivy": "org.apache.ivy",
    "jcip-annotations": "net.jcip",
    "gson": "com.google.code.gson",
    "bcprov": "org.bouncycastle",
    "bcpg": "org.bouncycastle",
    "nekohtml": "net.sourceforge.nekohtml",
    "jcifs": "jcifs",
    "xercesImpl": "xerces",
    "junit": "junit",
    "hamcrest": "org.hamcrest",
    "rhino": "org.mozilla",
    "bndlib": "biz.aQute.bnd",
    "bsh": "org.beanshell",
}

# (group, BOM artifact id, first library version published with that BOM)
LIBRARY_BOMS: tuple[tuple[str, str, str], ...] = (
    ("org.apache.groovy", "groovy-bom", "2.4.19"),
    ("org.codehaus.groovy", "groovy-bom", "2.4.19"),
    ("org.jetbrains.kotlin", "kotlin-bom", "1.3.20"),
    ("org.slf4j", "slf4j-bom", "2.0.8"),
    ("org.ow2.asm", "asm-bom", "9.3"),
)

GRADLE_BUILT_PREFIXES = ("gradle-", "local-groovy-", "native-platform-")

_JAR_NAME = re.compile(r"^(?P<name>.+?)-(?P<version>\d+.*)$")
# jsp-2.1 style names end in a version-like token that belongs to the name
_JSP_JAR_NAME = re.compile(r"^(?P<name>jsp(-\w+)?-2[^-]*)-(?P<version>\d+.*)$")
_PREBUILT_GROOVY_VERSION = re.compile(r"^\d+\.\d+-2\..+$")


def split_jar_name(file_name: str) -> tuple[str, str] | None:
    """Split ``guava-32.1.2-jre.jar`` into ``("guava", "32.1.2-jre")``."""
    if not file_name.endswith(".jar"):
        return None
    stem = file_name[: -len(".jar")]
    match = _JSP_JAR_NAME.match(stem) or _JAR_NAME.match(stem)
    if match is None:
        return None
    return match.group("name"), match.group("version")


def version_key(version: str) -> tuple[int, ...]:
    """Numeric components of a library version, for threshold comparisons."""
    return tuple(int(part) for part in re.findall(r"\d+", version))


def _pom_properties(jar: zipfile.ZipFile, name: str) -> dict[str, str] | None:
    for entry in jar.namelist():
        if entry.startswith("META-INF/maven/") and entry.endswith(f"/{name}/pom.properties"):
            return parse_properties(jar.read(entry).decode("utf-8", errors="replace"))
    return None


def _group_by_name(name: str, version: str, jar: zipfile.ZipFile) -> str | None:
    prefix = f"{name}-"
    for base, group in LIBRARY_GROUPS.items():
        if prefix.startswith(f"{base}-"):
            return group
    if prefix.startswith("groovy-"):
        return "org.apache.groovy" if version_key(version) >= (4,) else "org.codehaus.groovy"

    entries = jar.namelist()
    if prefix.startswith("annotations-") and "org/jetbrains/annotations/NotNull.class" in entries:
        return "org.jetbrains"
    if prefix.startswith("core-") and any(
        e.startswith("org/eclipse/jdt/core/") and e.endswith(".class") for e in entries
    ):
        return "org.eclipse.jdt"
    return None


def _bom_for(group: str, version: str) -> str | None:
    for bom_group, bom_name, since in LIBRARY_BOMS:
        if group == bom_group and version_key(version) >= version_key(since):
            return bom_name
    return None


def infer_dependency(file_name: str, jar: zipfile.ZipFile) -> LibraryDependency | None:
    """Infer the Maven coordinates of one library jar.

    Returns None for jars Gradle builds itself.

    Raises
    ------
    LayoutMismatch
        If the file name carries no version or no group can be determined.
    """
    parsed = split_jar_name(file_name)
    if parsed is None:
        raise LayoutMismatch(f"Library jar without a version: {file_name}")
    name, version = parsed
    if name.startswith("jspecify"):
        version = version.split("-no-module-annotation", 1)[0]

    properties = _pom_properties(jar, name) or {}
    if version.endswith("-SNAPSHOT") or properties.get("version", "").endswith("-SNAPSHOT"):
        logger.debug("Skipping snapshot library %s", file_name)
        return None

    group = properties.get("groupId") or None
    if group is None:
        if f"{name}-".startswith(GRADLE_BUILT_PREFIXES) or (
            name.startswith("groovy") and _PREBUILT_GROOVY_VERSION.match(version)
        ):
            logger.debug("Skipping Gradle-built library %s", file_name)
            return None
        group = _group_by_name(name, version, jar)
    if group is None:
        raise LayoutMismatch(f"Can't determine the Maven group of {file_name}")

    return LibraryDependency(group=group, name=name, version=version, bom=_bom_for(group, version))


def infer_dependencies(
    dist: zipfile.ZipFile, home: str, jar_entries: Iterable[str], version: GradleVersion
) -> tuple[LibraryDependency, ...]:
    """Infer the coordinates of every library jar in *jar_entries*.

    Entries are relative to *home* inside the distribution.  The result is
    sorted by group and name; the first jar wins on duplicate coordinates.

    Raises
    ------
    LayoutMismatch
        Listing every jar whose coordinates could not be determined.
    """
    found: dict[tuple[str, str], LibraryDependency] = {}
    unresolved: list[str] = []
    for entry in jar_entries:
        file_name = entry.rsplit("/", 1)[-1]
        with zipfile.ZipFile(io.BytesIO(dist.read(home + entry))) as jar:
            try:
                dependency = infer_dependency(file_name, jar)
            except LayoutMismatch as exc:
                unresolved.append(str(exc))
                continue
        if dependency is not None:
            found.setdefault((dependency.group, dependency.name), dependency)

    if unresolved:
        raise LayoutMismatch(
            f"Gradle {version} distribution has libraries with unknown coordinates:\n  "
            + "\n  ".join(unresolved)
        )
    return tuple(found[key] for key in sorted(found))
