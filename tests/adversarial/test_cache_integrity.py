"""Adversarial tests — interrupted extractions and damaged caches.

The extractor must never expose a partial artifact set:
1. Interrupted downloads leave no distribution in the cache
2. Interrupted extractions leave no cache entry and no workspace
3. Damaged cache entries are detected and rebuilt
4. Corrupt distributions are discarded so the next attempt refetches
"""

from __future__ import annotations

import json
import zipfile
from pathlib import Path

import pytest

from gradle_republish.core.errors import ChecksumMismatch, LayoutMismatch
from gradle_republish.core.extractor import DistributionExtractor


class InterruptingSource:
    """Writes half a download, then simulates Ctrl-C."""

    def fetch(self, version, distribution_type, destination: Path):
        destination.write_bytes(b"PK\x03\x04partial")
        raise KeyboardInterrupt


class TestInterruptedWork:
    def test_interrupted_download(self, tmp_path):
        extractor = DistributionExtractor(tmp_path / "cache", InterruptingSource())
        with pytest.raises(KeyboardInterrupt):
            extractor.extract("8.2", ["api"])
        assert list((tmp_path / "cache" / "distributions").iterdir()) == []
        assert not extractor.is_cached("8.2", ["api"])

    def test_interrupted_extraction(self, extractor, make_distribution, monkeypatch):
        make_distribution("8.2")

        def _interrupt(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(DistributionExtractor, "_write_merged_jar", staticmethod(_interrupt))
        with pytest.raises(KeyboardInterrupt):
            extractor.extract("8.2", ["api"])
        assert not any(extractor.cache_dir.rglob("manifest.json"))
        assert list((extractor.cache_dir / "tmp").iterdir()) == []

        monkeypatch.undo()
        assert extractor.extract("8.2", ["api"])


class TestDamagedCache:
    def test_corrupt_manifest_rebuilt(self, extractor, source, make_distribution):
        make_distribution("8.2")
        first = extractor.extract("8.2", ["api"])
        manifest = next(extractor.cache_dir.rglob("manifest.json"))
        manifest.write_text("{not json", encoding="utf-8")

        rebuilt = extractor.extract("8.2", ["api"])
        assert {d.fingerprint for d in rebuilt} == {d.fingerprint for d in first}
        json.loads(manifest.read_text(encoding="utf-8"))

    def test_deleted_payload_rebuilt(self, extractor, make_distribution):
        make_distribution("8.2")
        descriptor = next(iter(extractor.extract("8.2", ["api"])))
        descriptor.payload_path.unlink()
        assert not extractor.is_cached("8.2", ["api"])
        assert next(iter(extractor.extract("8.2", ["api"]))).payload_path.is_file()

    def test_corrupt_distribution_discarded(self, extractor, source, make_distribution):
        path = make_distribution("8.2")
        path.write_bytes(b"this is not a zip")
        with pytest.raises(ChecksumMismatch, match="Corrupt"):
            extractor.extract("8.2", ["api"])
        assert list((extractor.cache_dir / "distributions").glob("*.zip")) == []

        make_distribution("8.2")
        assert extractor.extract("8.2", ["api"])
        assert len(source.fetches) == 2

    def test_multiple_top_level_directories(self, extractor, make_distribution):
        path = make_distribution("8.2")
        with zipfile.ZipFile(path, "a") as dist:
            dist.writestr("evil/lib/gradle-core-api-8.2.jar", b"x")
        with pytest.raises(LayoutMismatch, match="single top-level directory"):
            extractor.extract("8.2", ["api"])
