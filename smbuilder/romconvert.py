"""
N64 ROM container formats.

A ROM dump comes in one of three byte orders, recognisable from its first
four bytes:

    z64  80 37 12 40   big-endian (native; what the decomp ports expect)
    v64  37 80 40 12   byte-swapped (16-bit words reversed)
    n64  40 12 37 80   little-endian (32-bit words reversed)

Conversion always goes through z64.
"""

from __future__ import annotations

import enum
from array import array
from pathlib import Path

from smbuilder.core.errors import BuildIOError, FormatError


class RomType(enum.Enum):
    Z64 = "z64"
    V64 = "v64"
    N64 = "n64"

    @property
    def magic(self) -> bytes:
        return _MAGIC[self]


_MAGIC = {
    RomType.Z64: bytes.fromhex("80371240"),
    RomType.V64: bytes.fromhex("37804012"),
    RomType.N64: bytes.fromhex("40123780"),
}

# (array typecode, word size) of the word each format reverses
_WORD_TYPECODE = {
    RomType.V64: ("H", 2),
    RomType.N64: ("I", 4),
}


def determine_format(path: Path) -> RomType:
    """Detect the byte order of the ROM at ``path``."""
    try:
        with open(path, "rb") as f:
            header = f.read(4)
    except OSError as e:
        raise BuildIOError(f"failed to read the ROM at {path}: {e}") from e

    for rom_type, magic in _MAGIC.items():
        if header == magic:
            return rom_type
    raise FormatError(f"{path} is not a recognised N64 ROM (header {header.hex() or 'empty'})")


def _swap_words(data: bytes, rom_type: RomType) -> bytes:
    typecode, size = _WORD_TYPECODE[rom_type]
    words = array(typecode)
    if words.itemsize != size:
        raise FormatError(f"unsupported word size for {rom_type.value} conversion")
    words.frombytes(data)
    words.byteswap()
    return words.tobytes()


def convert_bytes(data: bytes, src_type: RomType, dst_type: RomType) -> bytes:
    """Reorder ROM bytes from ``src_type`` into ``dst_type``."""
    if len(data) % 4:
        raise FormatError(f"ROM size {len(data)} is not a multiple of 4 bytes")
    if src_type == dst_type:
        return data

    # every swap is its own inverse, so z64 is reached and left the same way
    if src_type != RomType.Z64:
        data = _swap_words(data, src_type)
    if dst_type != RomType.Z64:
        data = _swap_words(data, dst_type)
    return data


def convert_rom(src: Path, dst: Path, src_type: RomType, dst_type: RomType) -> None:
    """Write the ROM at ``src`` to ``dst`` in ``dst_type`` byte order."""
    try:
        data = Path(src).read_bytes()
    except OSError as e:
        raise BuildIOError(f"failed to read the ROM at {src}: {e}") from e

    converted = convert_bytes(data, src_type, dst_type)

    try:
        Path(dst).write_bytes(converted)
    except OSError as e:
        raise BuildIOError(f"failed to write the converted ROM to {dst}: {e}") from e
