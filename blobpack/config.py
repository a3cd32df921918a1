from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

BLOB_FILE = "Blobs.toml"
LINK_SCRIPT = "memory.x"
SOURCE_FILE = "blob.rs"
MANIFEST_FILE = "BlobInfo.json"
LOG_FILE_NAME = "blobpack.jsonl"

DEFAULT_REGION = "FLASH"
RELEASE = "release"
DEV = "dev"

# read buffer for checksumming and verification
CHUNK_SIZE = 1024


@dataclass
class BuildConfig:
    """Everything one build needs, passed in by whoever drives the build."""

    manifest_dir: Path
    out_dir: Path
    target_dir: Path | None = None
    profile: str = DEV
    region: str = DEFAULT_REGION
    blob_file: Path | None = None
    link_script: Path | None = None
    log_file: Path | None = None

    def __post_init__(self):
        self.manifest_dir = Path(self.manifest_dir)
        self.out_dir = Path(self.out_dir)
        if self.target_dir is None:
            self.target_dir = self.manifest_dir / "target"
        self.target_dir = Path(self.target_dir)
        if self.blob_file is None:
            self.blob_file = self.manifest_dir / BLOB_FILE
        if self.link_script is None:
            self.link_script = self.manifest_dir / LINK_SCRIPT
        if self.log_file is None:
            self.log_file = self.target_dir / LOG_FILE_NAME
        self.blob_file = Path(self.blob_file)
        self.link_script = Path(self.link_script)
        self.log_file = Path(self.log_file)

    @property
    def link_script_out(self) -> Path:
        # output mirrors the input file name
        return self.out_dir / self.link_script.name

    @property
    def source_out(self) -> Path:
        return self.out_dir / SOURCE_FILE

    @property
    def manifest_out(self) -> Path:
        return self.target_dir / MANIFEST_FILE
