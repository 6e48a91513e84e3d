"""Bitmap fonts laid out column by column, as used by the SSD1306 drawing code."""

from __future__ import annotations

from dataclasses import dataclass

_HEADER_SIZE = 5


@dataclass(frozen=True)
class Font:
    """A fixed-width bitmap font.

    Glyph data is stored column by column.  Each column takes
    ``parts_per_column`` bytes, least significant byte first, and within a
    byte bit 0 is the topmost row.
    """

    height: int
    width: int
    spacing: int
    first: int
    last: int
    data: bytes

    @property
    def parts_per_column(self) -> int:
        """Number of bytes needed to hold one column of a glyph."""
        return (self.height + 7) // 8

    @property
    def advance(self) -> int:
        """Horizontal distance between consecutive characters at scale 1."""
        return self.width + self.spacing

    @classmethod
    def from_bytes(cls, raw) -> "Font":
        """Build a font from its packed form: a five byte header then glyph data.

        The header is height, width, extra spacing, first and last character code.
        """
        raw = bytes(raw)
        if len(raw) < _HEADER_SIZE:
            raise ValueError("font data is shorter than its header")
        height, width, spacing, first, last = raw[:_HEADER_SIZE]
        if last < first:
            raise ValueError("last character code precedes the first")
        font = cls(height, width, spacing, first, last, raw[_HEADER_SIZE:])
        needed = (last - first + 1) * width * font.parts_per_column
        if len(font.data) < needed:
            raise ValueError(
                f"font data holds {len(font.data)} bytes, {needed} are needed"
            )
        return font

    def has_glyph(self, char: str) -> bool:
        """Tell whether the font has a glyph for ``char``."""
        return self.first <= _code(char) <= self.last

    def glyph(self, char: str) -> tuple[int, ...]:
        """Return the columns of ``char``; bit ``n`` of a column is row ``n``."""
        if not self.has_glyph(char):
            raise KeyError(char)
        parts = self.parts_per_column
        start = (_code(char) - self.first) * self.width * parts
        return tuple(
            int.from_bytes(self.data[offset:offset + parts], "little")
            for offset in range(start, start + self.width * parts, parts)
        )


def _code(char: str) -> int:
    if len(char) != 1:
        raise ValueError(f"expected a single character, got {char!r}")
    return ord(char)


# Five columns per glyph, printable ASCII from space to tilde, eight per line.
_GLYPHS_8X5 = (
    "0000000000 00005F0000 0007000700 147F147F14 242A7F2A12 2313086462 3649562050 0008070300"
    "001C224100 0041221C00 2A1C7F1C2A 08083E0808 0080703000 0808080808 0000606000 2010080402"
    "3E5149453E 00427F4000 7249494946 2141494D33 1814127F10 2745454539 3C4A494931 4121110907"
    "3649494936 464949291E 0000140000 0040340000 0008142241 1414141414 0041221408 0201590906"
    "3E415D594E 7C1211127C 7F49494936 3E41414122 7F4141413E 7F49494941 7F09090901 3E41415173"
    "7F0808087F 00417F4100 2040413F01 7F08142241 7F40404040 7F021C027F 7F0408107F 3E4141413E"
    "7F09090906 3E4151215E 7F09192946 2649494932 03017F0103 3F4040403F 1F2040201F 3F4038403F"
    "6314081463 0304780403 6159494D43 007F414141 0204081020 004141417F 0402010204 4040404040"
    "0003070800 2054547840 7F28444438 3844444428 384444287F 3854545418 00087E0902 18A4A49C78"
    "7F08040478 00447D4000 2040403D00 7F10284400 00417F4000 7C04780478 7C08040478 3844444438"
    "FC18242418 18242418FC 7C08040408 4854545424 04043F4424 3C4040207C 1C2040201C 3C4030403C"
    "4428102844 4C9090907C 4464544C44 0008364100 0000770000 0041360800 0201020402"
)

FONT_8X5 = Font.from_bytes(bytes((8, 5, 1, 32, 126)) + bytes.fromhex(_GLYPHS_8X5))