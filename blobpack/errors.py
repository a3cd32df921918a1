# errors.py
from __future__ import annotations


class BlobPackError(Exception):
    """Base class for every error that aborts a build."""


# ---- linker script ----
class ParseError(BlobPackError):
    def __init__(self, message: str, pos: int | None = None):
        if pos is not None:
            message = f"{message} (at offset {pos})"
        super().__init__(message)
        self.pos = pos


class RegionNotFound(BlobPackError):
    pass


class MissingOrigin(BlobPackError):
    pass


class MissingLength(BlobPackError):
    pass


class IntegerOverflow(BlobPackError):
    pass


class ReservedSpaceExceedsRegion(BlobPackError):
    pass


# ---- blobs ----
class NoBlobsDefined(BlobPackError):
    pass


class BlobIOError(BlobPackError):
    pass


class EncodingError(BlobPackError):
    pass


class ConfigError(BlobPackError):
    pass


class ManifestError(BlobPackError):
    pass
