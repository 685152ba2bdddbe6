"""POM rendering for republished artifacts and the Gradle API BOM."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable
from pathlib import Path

from gradle_republish.core.hasher import fingerprint_file
from gradle_republish.core.layout import BOM_NAME
from gradle_republish.models.artifacts import ArtifactDescriptor

_POM_NS = "http://maven.apache.org/POM/4.0.0"
_XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
_SCHEMA_LOCATION = f"{_POM_NS} https://maven.apache.org/xsd/maven-4.0.0.xsd"


def _text(parent: ET.Element, tag: str, value: str | None) -> ET.Element | None:
    if value is None:
        return None
    element = ET.SubElement(parent, tag)
    element.text = value
    return element


def _project(group: str, name: str, version: str, packaging: str) -> ET.Element:
    project = ET.Element("project", {
        "xmlns": _POM_NS,
        "xmlns:xsi": _XSI_NS,
        "xsi:schemaLocation": _SCHEMA_LOCATION,
    })
    _text(project, "modelVersion", "4.0.0")
    _text(project, "groupId", group)
    _text(project, "artifactId", name)
    _text(project, "version", version)
    _text(project, "packaging", packaging)
    return project


def _add_license(project: ET.Element, license_name: str | None, license_url: str | None) -> None:
    if not license_name and not license_url:
        return
    licenses = ET.SubElement(project, "licenses")
    license_el = ET.SubElement(licenses, "license")
    _text(license_el, "name", license_name)
    _text(license_el, "url", license_url)


def _dependency(
    parent: ET.Element,
    group: str,
    name: str,
    version: str | None,
    *,
    type_: str | None = None,
    scope: str | None = None,
) -> None:
    dependency = ET.SubElement(parent, "dependency")
    _text(dependency, "groupId", group)
    _text(dependency, "artifactId", name)
    _text(dependency, "version", version)
    _text(dependency, "type", type_)
    _text(dependency, "scope", scope)


def _serialize(project: ET.Element) -> bytes:
    ET.indent(project, space="  ")
    return ET.tostring(project, encoding="utf-8", xml_declaration=True) + b"\n"


def render_artifact_pom(
    descriptor: ArtifactDescriptor,
    *,
    license_name: str | None = None,
    license_url: str | None = None,
    import_bom: bool = True,
) -> bytes:
    """Render the POM of a jar artifact.

    The Gradle API BOM is imported when *import_bom* is set.  Library
    dependencies managed by a BOM of their own are declared without a
    version and import that BOM instead.
    """
    project = _project(descriptor.group, descriptor.name, descriptor.version, "jar")
    _add_license(project, license_name, license_url)

    imports: list[tuple[str, str, str]] = []
    if import_bom:
        imports.append((descriptor.group, BOM_NAME, descriptor.version))
    for library in descriptor.dependencies:
        if library.bom and (library.group, library.bom, library.version) not in imports:
            imports.append((library.group, library.bom, library.version))
    if imports:
        management = ET.SubElement(ET.SubElement(project, "dependencyManagement"), "dependencies")
        for group, name, version in imports:
            _dependency(management, group, name, version, type_="pom", scope="import")

    if descriptor.dependencies:
        dependencies = ET.SubElement(project, "dependencies")
        for library in descriptor.dependencies:
            _dependency(
                dependencies, library.group, library.name, None if library.bom else library.version
            )
    return _serialize(project)


def render_bom(
    group: str,
    version: str,
    descriptors: Iterable[ArtifactDescriptor],
    *,
    license_name: str | None = None,
    license_url: str | None = None,
) -> bytes:
    """Render the BOM listing every republished main artifact of *version*."""
    project = _project(group, BOM_NAME, version, "pom")
    _add_license(project, license_name, license_url)
    management = ET.SubElement(ET.SubElement(project, "dependencyManagement"), "dependencies")
    names = sorted({
        d.name for d in descriptors
        if d.group == group and d.classifier is None and d.extension == "jar"
    })
    for name in names:
        _dependency(management, group, name, version)
    return _serialize(project)


def write_pom(
    content: bytes, group: str, name: str, version: str, directory: Path, logical_artifact: str = ""
) -> ArtifactDescriptor:
    """Write POM bytes into *directory* and describe them as a ``pom`` artifact."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}-{version}.pom"
    path.write_bytes(content)
    return ArtifactDescriptor(
        group=group,
        name=name,
        version=version,
        extension="pom",
        fingerprint=fingerprint_file(path),
        size_bytes=path.stat().st_size,
        logical_artifact=logical_artifact,
        payload_path=path,
    )
