# blobs/codegen.py
"""
Rust accessors for the blobs, one `pub fn NAME() -> &'static [u8]` each.

Inline blobs are pulled in with `include_bytes!`. Stored blobs are read
from their fixed flash address through `stored_blob`, the only place in
the generated module that touches raw memory; it checks the SHA-1 taken at
build time on first use and panics when the flash holds something else.
"""

from __future__ import annotations

from typing import Iterable, TextIO

from .layout import Blob

HEADER = "// Generated by blobpack. Do not edit.\n"

STORED_PRELUDE = """
use core::slice;
use core::sync::atomic::{AtomicBool, Ordering};
use sha1_smol::Sha1;

/// Bytes of a blob written to flash by the blob loader.
///
/// Contract: the linker script generated next to this file keeps
/// `[address, address + size)` out of the program image. That range is
/// mapped, readable and never written while the firmware runs.
fn stored_blob(
    name: &str,
    address: usize,
    size: usize,
    checksum: &[u8; 20],
    verified: &AtomicBool,
) -> &'static [u8] {
    // SAFETY: see the contract above.
    let blob = unsafe { slice::from_raw_parts(address as *const u8, size) };
    if !verified.load(Ordering::Relaxed) {
        let mut m = Sha1::new();
        m.update(blob);
        if &m.digest().bytes() != checksum {
            panic!("Checksum check failed for {}", name);
        }
        verified.store(true, Ordering::Relaxed);
    }
    blob
}
"""

INLINE_TEMPLATE = """
pub fn {name}() -> &'static [u8] {{
    include_bytes!({path})
}}
"""

STORED_TEMPLATE = """
pub fn {name}() -> &'static [u8] {{
    static VERIFIED: AtomicBool = AtomicBool::new(false);
    const CHECKSUM: [u8; 20] = [{checksum}];
    stored_blob({label}, 0x{address:08x}, {size}, &CHECKSUM, &VERIFIED)
}}
"""


def rust_string(text: str) -> str:
    """Quote `text` as a Rust string literal."""
    out = []
    for ch in text:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{{{ord(ch):x}}}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _checksum_bytes(checksum: bytes) -> str:
    return ", ".join(f"0x{b:02x}" for b in checksum)


def render_blob(blob: Blob, base_address: int) -> str:
    if blob.inline:
        return INLINE_TEMPLATE.format(name=blob.name, path=rust_string(blob.filename))
    return STORED_TEMPLATE.format(
        name=blob.name,
        label=rust_string(blob.name),
        address=base_address + blob.start,
        size=blob.size,
        checksum=_checksum_bytes(blob.checksum),
    )


def generate_source(sink: TextIO, blobs: Iterable[Blob], base_address: int) -> None:
    """Write the accessor module for `blobs` to `sink`."""
    blobs = list(blobs)
    sink.write(HEADER)
    if any(not b.inline for b in blobs):
        sink.write(STORED_PRELUDE)
    for blob in blobs:
        sink.write(render_blob(blob, base_address))
