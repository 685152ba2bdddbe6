"""Hashing helpers for fingerprints, checksum sidecars and cache keys."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

_CHUNK_SIZE = 1024 * 1024

# Sidecar extensions written next to every published payload
CHECKSUM_ALGORITHMS: dict[str, str] = {
    "md5": ".md5",
    "sha1": ".sha1",
    "sha256": ".sha256",
    "sha512": ".sha512",
}


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def file_digest(path: Path, algorithm: str = "sha256") -> str:
    """Return the hex digest of a file, read in chunks."""
    digest = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def file_digests(path: Path) -> dict[str, str]:
    """Compute every sidecar checksum of a file in a single pass."""
    digests = {name: hashlib.new(name) for name in CHECKSUM_ALGORITHMS}
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            for digest in digests.values():
                digest.update(chunk)
    return {name: digest.hexdigest() for name, digest in digests.items()}


def fingerprint_file(path: Path) -> str:
    """Content address of a file: ``sha256:<hex>``."""
    return f"sha256:{file_digest(path)}"


def fingerprint_bytes(data: bytes) -> str:
    return f"sha256:{sha256_hex(data)}"


def cache_key(obj: Any, length: int = 16) -> str:
    """Short, stable key for a JSON-serializable object."""
    return sha256_hex(canonical_json_bytes(obj))[:length]


def parse_checksum(text: str) -> str:
    """Extract the digest from a checksum sidecar.

    Accepts both a bare digest and the ``<digest>  <file name>`` form.
    """
    stripped = text.strip()
    return stripped.split()[0].lower() if stripped else ""
