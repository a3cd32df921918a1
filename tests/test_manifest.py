import hashlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from blobpack.blobs.layout import Blob
from blobpack.blobs.manifest import (
    build_manifest,
    manifest_from_dict,
    read_manifest,
    verify_manifest,
    write_manifest,
)
from blobpack.errors import ManifestError


def _blob(name, data, inline=False, start=0, filename=None):
    return Blob(name, filename or f"/work/{name}.bin", len(data), hashlib.sha1(data).digest(),
                inline=inline, start=start)


class TestBuildManifest(unittest.TestCase):
    def test_absolute_addresses_and_stored_only(self):
        blobs = [_blob("a", b"a" * 100), _blob("b", b"b" * 7, inline=True), _blob("c", b"c" * 200, start=100)]
        m = build_manifest(blobs, 0x100FFD00, "RP2040")
        self.assertEqual(list(m.info), ["a", "c"])
        self.assertEqual(m.info["a"].start, 0x100FFD00)
        self.assertEqual(m.info["c"].start, 0x100FFD00 + 100)
        self.assertEqual(m.info["c"].size, 200)
        self.assertEqual(m.chip, "RP2040")


class TestManifestFile(unittest.TestCase):
    def test_json_layout(self):
        m = build_manifest([_blob("logo", b"logo")], 0x1000, "STM32F411CEUx")
        sink = io.StringIO()
        write_manifest(sink, m)
        data = json.loads(sink.getvalue())
        self.assertEqual(data["probe"], {"chip": "STM32F411CEUx"})
        self.assertEqual(data["info"]["logo"], {
            "start": 0x1000,
            "size": 4,
            "checksum": hashlib.sha1(b"logo").hexdigest(),
            "filename": "/work/logo.bin",
        })

    def test_read_back(self):
        m = build_manifest([_blob("logo", b"logo"), _blob("font", b"font", start=4)], 0x2000, "RP2040")
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "BlobInfo.json"
            with open(path, "w", encoding="utf-8") as f:
                write_manifest(f, m)
            self.assertEqual(read_manifest(path), m)

    def test_rejects_malformed(self):
        good = {"start": 0, "size": 1, "checksum": "00" * 20, "filename": "a"}
        cases = [
            [],
            {"info": {}},
            {"info": [], "probe": {"chip": "x"}},
            {"info": {"a": dict(good, checksum="zz")}, "probe": {"chip": "x"}},
            {"info": {"a": dict(good, checksum="00" * 19)}, "probe": {"chip": "x"}},
            {"info": {"a": dict(good, start=-1)}, "probe": {"chip": "x"}},
            {"info": {"a": dict(good, size=True)}, "probe": {"chip": "x"}},
            {"info": {"a": dict(good, filename=None)}, "probe": {"chip": "x"}},
        ]
        for data in cases:
            with self.subTest(data=data):
                with self.assertRaises(ManifestError):
                    manifest_from_dict(data)

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ManifestError):
                read_manifest(Path(td) / "BlobInfo.json")


class TestVerifyManifest(unittest.TestCase):
    def test_detects_changed_files(self):
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "same.bin").write_bytes(b"same")
            (root / "grown.bin").write_bytes(b"grown")
            (root / "edited.bin").write_bytes(b"edited")
            blobs = [
                _blob("same", b"same", filename=str(root / "same.bin")),
                _blob("grown", b"grow", filename=str(root / "grown.bin")),
                _blob("edited", b"EDITED", filename=str(root / "edited.bin")),
                _blob("gone", b"gone", filename=str(root / "gone.bin")),
            ]
            results = {r.name: r for r in verify_manifest(build_manifest(blobs, 0, "x"))}

        self.assertTrue(results["same"].ok)
        self.assertFalse(results["grown"].ok)
        self.assertIn("size", results["grown"].reason)
        self.assertEqual(results["edited"].reason, "checksum mismatch")
        self.assertFalse(results["gone"].ok)


if __name__ == "__main__":
    unittest.main()
