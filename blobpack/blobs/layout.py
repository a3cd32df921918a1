# blobs/layout.py
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Tuple

from ..config import CHUNK_SIZE, RELEASE
from ..errors import BlobIOError, EncodingError, IntegerOverflow, NoBlobsDefined
from .config import BlobParams

U32_MAX = 0xFFFF_FFFF


@dataclass(frozen=True)
class Blob:
    name: str
    filename: str
    size: int
    checksum: bytes  # SHA-1, 20 bytes
    inline: bool
    start: int = 0  # offset inside the reserved space; unused for inline blobs


@dataclass(frozen=True)
class BlobLayout:
    blobs: Tuple[Blob, ...]
    total_size: int  # bytes to reserve for the stored blobs

    @property
    def stored(self) -> Tuple[Blob, ...]:
        return tuple(b for b in self.blobs if not b.inline)

    @property
    def inline(self) -> Tuple[Blob, ...]:
        return tuple(b for b in self.blobs if b.inline)


def checksum_file(path: Path, chunk_size: int = CHUNK_SIZE) -> Tuple[int, bytes]:
    """Stream `path` once; return its size and SHA-1 digest."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    digest = hashlib.sha1()
    size = 0
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
            size += len(chunk)
    return size, digest.digest()


def resolve_inline(params: BlobParams, profile: str) -> bool:
    """`inline` wins; otherwise release builds embed and other builds store."""
    if params.inline is not None:
        return params.inline
    if profile == RELEASE:
        return True if params.inline_release is None else params.inline_release
    return False if params.inline_dev is None else params.inline_dev


def _path_text(params: BlobParams) -> str:
    text = str(params.filename)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(
            f"blob {params.name!r}: file name {text!r} can not be represented as UTF-8"
        ) from e
    return text


def layout_blobs(params: Iterable[BlobParams], profile: str,
                 chunk_size: int = CHUNK_SIZE) -> BlobLayout:
    """
    Measure and checksum every blob, decide inline/stored for `profile` and
    pack the stored ones back to back from offset 0, in declaration order.
    """
    params = list(params)
    if not params:
        raise NoBlobsDefined("no blobs defined")

    blobs = []
    offset = 0
    for p in params:
        filename = _path_text(p)
        try:
            size, checksum = checksum_file(p.filename, chunk_size)
        except OSError as e:
            raise BlobIOError(f"blob {p.name!r}: cannot read {filename}: {e.strerror or e}") from e
        if size > U32_MAX:
            raise IntegerOverflow(f"blob {p.name!r}: {size} bytes does not fit in 32 bits")

        inline = resolve_inline(p, profile)
        blobs.append(Blob(
            name=p.name,
            filename=filename,
            size=size,
            checksum=checksum,
            inline=inline,
            start=0 if inline else offset,
        ))
        if not inline:
            offset += size
            if offset > U32_MAX:
                raise IntegerOverflow(f"stored blobs exceed 32 bits at {p.name!r}")
    return BlobLayout(blobs=tuple(blobs), total_size=offset)
