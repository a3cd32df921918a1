# blobs/config.py
"""
Blob configuration (Blobs.toml):

    [probe]
    chip = "RP2040"

    [files.logo]
    filename = "assets/logo.bin"
    inline = true            # overrides both profile flags
    inline-dev = true        # dev builds (default false)
    inline-release = false   # release builds (default true)

Blobs keep the order in which they are declared.
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..errors import BlobIOError, ConfigError

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# blob names become function names in the generated Rust module
RUST_KEYWORDS = frozenset("""
    as async await break const continue crate dyn else enum extern false fn for
    if impl in let loop match mod move mut pub ref return self Self static struct
    super trait true type unsafe use where while abstract become box do final
    macro override priv typeof unsized virtual yield try
""".split())

_FLAG_KEYS = {
    "inline": "inline",
    "inline-dev": "inline_dev",
    "inline_dev": "inline_dev",
    "inline-release": "inline_release",
    "inline_release": "inline_release",
}


@dataclass(frozen=True)
class BlobParams:
    name: str
    filename: Path
    inline: Optional[bool] = None
    inline_dev: Optional[bool] = None
    inline_release: Optional[bool] = None


@dataclass(frozen=True)
class BlobConfig:
    blobs: Tuple[BlobParams, ...]
    chip: str


def _expect_table(obj: Any, where: str) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise ConfigError(f"{where} must be a table")
    return obj


def check_blob_name(name: str, where: str) -> str:
    if not _IDENT.match(name) or name == "_" or name in RUST_KEYWORDS:
        raise ConfigError(f"{where}: blob name {name!r} is not a valid identifier")
    return name


def _blob_params(name: str, raw: Any, base_dir: Path, source: str) -> BlobParams:
    where = f"{source}: files.{name}"
    table = _expect_table(raw, where)
    check_blob_name(name, source)

    filename = table.get("filename")
    if not isinstance(filename, str) or not filename:
        raise ConfigError(f"{where}.filename must be a non-empty string")

    flags: Dict[str, bool] = {}
    for key, value in table.items():
        if key == "filename":
            continue
        if key not in _FLAG_KEYS:
            raise ConfigError(f"{where}: unknown key {key!r}")
        if not isinstance(value, bool):
            raise ConfigError(f"{where}.{key} must be true or false")
        attr = _FLAG_KEYS[key]
        if attr in flags:
            raise ConfigError(f"{where}: {key!r} given twice")
        flags[attr] = value

    return BlobParams(name=name, filename=base_dir / filename, **flags)


def parse_blob_config(data: Dict[str, Any], base_dir: Path, source: str = "<config>") -> BlobConfig:
    """Validate parsed TOML; relative file names are resolved against `base_dir`."""
    probe = _expect_table(data.get("probe"), f"{source}: probe")
    chip = probe.get("chip")
    if not isinstance(chip, str) or not chip:
        raise ConfigError(f"{source}: probe.chip must be a non-empty string")

    files = _expect_table(data.get("files", {}), f"{source}: files")
    blobs = tuple(_blob_params(name, raw, Path(base_dir), source) for name, raw in files.items())
    return BlobConfig(blobs=blobs, chip=chip)


def load_blob_config(path: Path) -> BlobConfig:
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise BlobIOError(f"cannot read blob configuration {path}: {e.strerror or e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e
    return parse_blob_config(data, path.resolve().parent, str(path))
