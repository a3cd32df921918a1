# blobs/manifest.py
"""
BlobInfo.json: what the blob loader needs to put the stored blobs in flash.

    {
      "info": {
        "logo": {"start": 268435456, "size": 300,
                 "checksum": "<40 hex digits>", "filename": "/abs/logo.bin"}
      },
      "probe": {"chip": "RP2040"}
    }

Inline blobs are part of the program image and are not listed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, TextIO

from ..config import CHUNK_SIZE
from ..errors import ManifestError
from .layout import Blob, checksum_file


@dataclass(frozen=True)
class BlobInfo:
    start: int  # absolute address
    size: int
    checksum: bytes
    filename: str


@dataclass(frozen=True)
class Manifest:
    info: Dict[str, BlobInfo]
    chip: str


@dataclass(frozen=True)
class VerifyResult:
    name: str
    ok: bool
    reason: str = ""


def build_manifest(blobs: Iterable[Blob], base_address: int, chip: str) -> Manifest:
    info = {
        b.name: BlobInfo(start=base_address + b.start, size=b.size,
                         checksum=b.checksum, filename=b.filename)
        for b in blobs
        if not b.inline
    }
    return Manifest(info=info, chip=chip)


def manifest_to_dict(manifest: Manifest) -> Dict[str, Any]:
    return {
        "info": {
            name: {
                "start": b.start,
                "size": b.size,
                "checksum": b.checksum.hex(),
                "filename": b.filename,
            }
            for name, b in manifest.info.items()
        },
        "probe": {"chip": manifest.chip},
    }


def _int(entry: Dict[str, Any], key: str, where: str) -> int:
    value = entry.get(key)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ManifestError(f"{where}.{key} must be a non-negative integer")
    return value


def manifest_from_dict(data: Any, source: str = "<manifest>") -> Manifest:
    if not isinstance(data, dict):
        raise ManifestError(f"{source}: top level must be an object")
    probe = data.get("probe")
    if not isinstance(probe, dict) or not isinstance(probe.get("chip"), str):
        raise ManifestError(f"{source}: probe.chip must be a string")
    raw_info = data.get("info")
    if not isinstance(raw_info, dict):
        raise ManifestError(f"{source}: info must be an object")

    info = {}
    for name, entry in raw_info.items():
        where = f"{source}: info.{name}"
        if not isinstance(entry, dict):
            raise ManifestError(f"{where} must be an object")
        try:
            checksum = bytes.fromhex(entry.get("checksum", ""))
        except (TypeError, ValueError) as e:
            raise ManifestError(f"{where}.checksum is not hex") from e
        if len(checksum) != 20:
            raise ManifestError(f"{where}.checksum must be 20 bytes")
        filename = entry.get("filename")
        if not isinstance(filename, str):
            raise ManifestError(f"{where}.filename must be a string")
        info[name] = BlobInfo(
            start=_int(entry, "start", where),
            size=_int(entry, "size", where),
            checksum=checksum,
            filename=filename,
        )
    return Manifest(info=info, chip=probe["chip"])


def dump_manifest(manifest: Manifest) -> str:
    return json.dumps(manifest_to_dict(manifest), ensure_ascii=False, indent=2) + "\n"


def write_manifest(sink: TextIO, manifest: Manifest) -> None:
    sink.write(dump_manifest(manifest))


def read_manifest(path: Path) -> Manifest:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ManifestError(f"cannot read manifest {path}: {e.strerror or e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"{path}: {e}") from e
    return manifest_from_dict(data, str(path))


def verify_manifest(manifest: Manifest, chunk_size: int = CHUNK_SIZE) -> List[VerifyResult]:
    """Check that every listed file still has the recorded size and SHA-1."""
    results = []
    for name, info in manifest.info.items():
        try:
            size, checksum = checksum_file(Path(info.filename), chunk_size)
        except OSError as e:
            results.append(VerifyResult(name, False, f"cannot read {info.filename}: {e.strerror or e}"))
            continue
        if size != info.size:
            results.append(VerifyResult(name, False, f"size is {size}, manifest says {info.size}"))
        elif checksum != info.checksum:
            results.append(VerifyResult(name, False, "checksum mismatch"))
        else:
            results.append(VerifyResult(name, True))
    return results
