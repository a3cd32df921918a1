# linker/patch.py
from __future__ import annotations

from dataclasses import dataclass

from ..errors import ReservedSpaceExceedsRegion
from .region import MemoryRegion, find_memory_region


@dataclass(frozen=True)
class PatchResult:
    text: str
    region: MemoryRegion  # as declared before patching
    new_length: int

    @property
    def base_address(self) -> int:
        """First address of the carved space, right after the shrunk region."""
        return self.region.origin + self.new_length

    @property
    def reserved(self) -> int:
        return self.region.length - self.new_length


def patch_link_script(text: str, name: str, reserved: int) -> PatchResult:
    """
    Shrink region `name` by `reserved` bytes, taken from its end.

    Only the LENGTH expression of the declaration is rewritten; the rest of
    the script is returned unchanged.
    """
    if reserved < 0:
        raise ValueError(f"reserved size must not be negative: {reserved}")

    match = find_memory_region(text, name)
    region = match.region
    if region.length < 0:
        raise ReservedSpaceExceedsRegion(
            f"region {name!r} declares a negative LENGTH ({region.length}), no space can be taken from it"
        )
    if reserved > region.length:
        raise ReservedSpaceExceedsRegion(
            f"blobs need 0x{reserved:x} bytes but region {name!r} is only "
            f"0x{region.length:x} bytes long"
        )
    new_length = region.length - reserved
    if reserved == 0:
        return PatchResult(text, region, new_length)

    start, end = match.length_span
    declaration = match.declaration[:start] + f"0x{new_length:x}" + match.declaration[end:]
    return PatchResult(match.before + declaration + match.after, region, new_length)
