# pipeline.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from .artifacts import StagedOutputs
from .blobs.codegen import generate_source
from .blobs.config import load_blob_config
from .blobs.layout import U32_MAX, BlobLayout, layout_blobs
from .blobs.manifest import Manifest, build_manifest, write_manifest
from .config import BuildConfig
from .errors import BlobIOError, BlobPackError, ConfigError, EncodingError, IntegerOverflow
from .eventlog import log_event
from .linker.patch import PatchResult, patch_link_script


@dataclass(frozen=True)
class BuildResult:
    layout: BlobLayout
    patch: PatchResult
    manifest: Manifest
    outputs: List[Path]

    @property
    def base_address(self) -> int:
        return self.patch.base_address


def read_link_script(path: Path) -> str:
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise EncodingError(f"linker script {path} is not UTF-8 text: {e.reason}") from e
    except OSError as e:
        raise BlobIOError(f"cannot read linker script {path}: {e.strerror or e}") from e


def _run(config: BuildConfig) -> BuildResult:
    if config.link_script_out.resolve() == config.link_script.resolve():
        raise ConfigError(
            f"patched linker script would overwrite its input {config.link_script}; "
            f"choose an output directory other than {config.out_dir}"
        )
    blob_config = load_blob_config(config.blob_file)
    layout = layout_blobs(blob_config.blobs, config.profile)

    script = read_link_script(config.link_script)
    patch = patch_link_script(script, config.region, layout.total_size)
    base = patch.base_address
    if base < 0 or base + layout.total_size > U32_MAX + 1:
        raise IntegerOverflow(
            f"blob space at 0x{base:x} in region {config.region!r} is outside the 32-bit address range"
        )
    manifest = build_manifest(layout.blobs, base, blob_config.chip)

    try:
        with StagedOutputs() as out:
            out.write_text(config.link_script_out, patch.text)
            with out.open(config.source_out) as sink:
                generate_source(sink, layout.blobs, base)
            with out.open(config.manifest_out) as sink:
                write_manifest(sink, manifest)
            outputs = out.pending
    except OSError as e:
        raise BlobIOError(f"cannot write build outputs: {e}") from e
    return BuildResult(layout=layout, patch=patch, manifest=manifest, outputs=outputs)


def build(config: BuildConfig) -> BuildResult:
    """
    Lay out the blobs, carve their space out of the target region and write
    the patched linker script, the accessor source and the manifest.

    Nothing is written unless every step succeeds.
    """
    log_event(config.log_file, "build_started", {
        "profile": config.profile,
        "region": config.region,
        "blob_file": config.blob_file,
        "link_script": config.link_script,
    })
    try:
        result = _run(config)
    except BlobPackError as e:
        log_event(config.log_file, "build_failed", {"error": type(e).__name__, "message": str(e)})
        raise
    log_event(config.log_file, "build_finished", {
        "base_address": f"0x{result.base_address:08x}",
        "reserved": result.layout.total_size,
        "inline": [b.name for b in result.layout.inline],
        "stored": [b.name for b in result.layout.stored],
        "outputs": result.outputs,
    })
    return result


def cargo_directives(config: BuildConfig, result: BuildResult) -> List[str]:
    """Lines a Cargo build script prints so the patched memory.x is used."""
    lines = [
        f"cargo:rustc-link-search={config.out_dir}",
        f"cargo:rerun-if-changed={config.link_script}",
        f"cargo:rerun-if-changed={config.blob_file}",
    ]
    lines += [f"cargo:rerun-if-changed={b.filename}" for b in result.layout.blobs]
    return lines
