"""Frame buffer and command stream for SSD1306 OLED displays on an I2C bus."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol

from .font import FONT_8X5, Font

_COMMAND_PREFIX = 0x00
_DATA_PREFIX = 0x40
_BMP_HEADER_SIZE = 54
_PIXEL_ON = "#"
_PIXEL_OFF = "."


class Command(IntEnum):
    """SSD1306 command bytes."""

    SET_CONTRAST = 0x81
    SET_ENTIRE_ON = 0xA4
    SET_NORM_INV = 0xA6
    SET_DISP = 0xAE
    SET_MEM_ADDR = 0x20
    SET_COL_ADDR = 0x21
    SET_PAGE_ADDR = 0x22
    SET_DISP_START_LINE = 0x40
    SET_SEG_REMAP = 0xA0
    SET_MUX_RATIO = 0xA8
    SET_COM_OUT_DIR = 0xC0
    SET_DISP_OFFSET = 0xD3
    SET_COM_PIN_CFG = 0xDA
    SET_DISP_CLK_DIV = 0xD5
    SET_PRECHARGE = 0xD9
    SET_VCOM_DESEL = 0xDB
    SET_CHARGE_PUMP = 0x8D


class Bus(Protocol):
    """Anything that can write a block of bytes to an I2C address."""

    def write(self, address: int, data: bytes) -> None: ...


@dataclass
class RecordingBus:
    """A bus that keeps every write it receives, in order."""

    writes: list[tuple[int, bytes]] = field(default_factory=list)

    def write(self, address: int, data) -> None:
        self.writes.append((address, bytes(data)))


class Display:
    """An SSD1306 display: a page-organised frame buffer plus its command link."""

    def __init__(self, width: int, height: int, address: int, bus: Bus,
                 external_vcc: bool = False) -> None:
        if not 0 < width <= 0xFF:
            raise ValueError(f"width must be between 1 and 255, got {width}")
        if not 0 < height <= 0xFF or height % 8:
            raise ValueError(f"height must be a multiple of 8 below 256, got {height}")
        self.width = width
        self.height = height
        self.pages = height // 8
        self.address = address
        self.bus = bus
        self.external_vcc = external_vcc
        self.buffer = bytearray(self.pages * width)

        self._commands(
            Command.SET_DISP,
            Command.SET_DISP_CLK_DIV, 0x80,
            Command.SET_MUX_RATIO, height - 1,
            Command.SET_DISP_OFFSET, 0x00,
            Command.SET_DISP_START_LINE,
            Command.SET_CHARGE_PUMP, 0x10 if external_vcc else 0x14,
            Command.SET_SEG_REMAP | 0x01,
            Command.SET_COM_OUT_DIR | 0x08,
            Command.SET_COM_PIN_CFG, 0x02 if width > 2 * height else 0x12,
            Command.SET_CONTRAST, 0xFF,
            Command.SET_PRECHARGE, 0x22 if external_vcc else 0xF1,
            Command.SET_VCOM_DESEL, 0x30,
            Command.SET_ENTIRE_ON,
            Command.SET_NORM_INV,
            Command.SET_DISP | 0x01,
            Command.SET_MEM_ADDR, 0x00,
        )

    def _commands(self, *values: int) -> None:
        for value in values:
            self.bus.write(self.address, bytes((_COMMAND_PREFIX, int(value) & 0xFF)))

    def poweroff(self) -> None:
        """Switch the panel off."""
        self._commands(Command.SET_DISP)

    def poweron(self) -> None:
        """Switch the panel on."""
        self._commands(Command.SET_DISP | 0x01)

    def contrast(self, value: int) -> None:
        """Set the contrast level, 0 to 255."""
        if not 0 <= value <= 0xFF:
            raise ValueError(f"contrast must be between 0 and 255, got {value}")
        self._commands(Command.SET_CONTRAST, value)

    def invert(self, inverted) -> None:
        """Invert the display when the lowest bit of ``inverted`` is set."""
        self._commands(Command.SET_NORM_INV | (int(inverted) & 1))

    def clear(self) -> None:
        """Blank the frame buffer."""
        self.buffer[:] = bytes(len(self.buffer))

    def _locate(self, x: int, y: int) -> tuple[int, int] | None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return None
        return x + self.width * (y >> 3), 1 << (y & 0x07)

    def pixel(self, x: int, y: int) -> bool:
        """Tell whether the pixel at (x, y) is lit; off-screen pixels are dark."""
        location = self._locate(x, y)
        if location is None:
            return False
        index, mask = location
        return bool(self.buffer[index] & mask)

    def clear_pixel(self, x: int, y: int) -> None:
        """Turn a pixel off; off-screen coordinates are ignored."""
        location = self._locate(x, y)
        if location is not None:
            index, mask = location
            self.buffer[index] &= ~mask & 0xFF

    def draw_pixel(self, x: int, y: int) -> None:
        """Turn a pixel on; off-screen coordinates are ignored."""
        location = self._locate(x, y)
        if location is not None:
            index, mask = location
            self.buffer[index] |= mask

    def draw_line(self, x1: int, y1: int, x2: int, y2: int) -> None:
        """Draw a line, stepping one pixel per column."""
        if x1 > x2:
            x1, y1, x2, y2 = x2, y2, x1, y1

        if x1 == x2:
            low, high = sorted((y1, y2))
            for y in range(low, high + 1):
                self.draw_pixel(x1, y)
            return

        slope = (y2 - y1) / (x2 - x1)
        for x in range(x1, x2 + 1):
            self.draw_pixel(x, int(slope * (x - x1) + y1))

    def clear_square(self, x: int, y: int, width: int, height: int) -> None:
        """Turn off every pixel of a filled rectangle."""
        for i in range(width):
            for j in range(height):
                self.clear_pixel(x + i, y + j)

    def draw_square(self, x: int, y: int, width: int, height: int) -> None:
        """Turn on every pixel of a filled rectangle."""
        for i in range(width):
            for j in range(height):
                self.draw_pixel(x + i, y + j)

    def draw_empty_square(self, x: int, y: int, width: int, height: int) -> None:
        """Draw the outline of a rectangle spanning (x, y) to (x+width, y+height)."""
        self.draw_line(x, y, x + width, y)
        self.draw_line(x, y + height, x + width, y + height)
        self.draw_line(x, y, x, y + height)
        self.draw_line(x + width, y, x + width, y + height)

    def draw_char(self, x: int, y: int, scale: int, char: str,
                  font: Font = FONT_8X5) -> None:
        """Draw one character; characters the font lacks are skipped."""
        if not font.has_glyph(char):
            return
        rows = font.parts_per_column * 8
        for column_index, column in enumerate(font.glyph(char)):
            for row in range(rows):
                if column >> row & 1:
                    self.draw_square(x + column_index * scale, y + row * scale,
                                     scale, scale)

    def draw_string(self, x: int, y: int, scale: int, text: str,
                    font: Font = FONT_8X5) -> None:
        """Draw text left to right starting at (x, y)."""
        step = font.advance * scale
        for offset, char in enumerate(text):
            self.draw_char(x + offset * step, y, scale, char, font)

    def show_bmp(self, data, x_offset: int = 0, y_offset: int = 0) -> None:
        """Draw the dark pixels of an uncompressed monochrome BMP file.

        Data that is too short for a header, not one bit per pixel, or
        compressed is ignored.
        """
        data = bytes(data)
        if len(data) < _BMP_HEADER_SIZE:
            return

        (pixel_offset,) = struct.unpack_from("<I", data, 10)
        info_size, width, height = struct.unpack_from("<IIi", data, 14)
        (bit_count,) = struct.unpack_from("<H", data, 28)
        (compression,) = struct.unpack_from("<I", data, 30)
        if bit_count != 1 or compression != 0:
            return

        table_start = 14 + info_size
        if len(data) < table_start + 8:
            raise ValueError("BMP colour table is truncated")
        palette = (data[table_start:table_start + 3],
                   data[table_start + 4:table_start + 7])
        color_val = next(
            (index for index, rgb in enumerate(palette) if not any(rgb)), 0
        )

        bytes_per_line = (width + 7) // 8
        if bytes_per_line & 3:
            bytes_per_line = (bytes_per_line & ~3) + 4

        rows = range(height - 1, -1, -1) if height > 0 else range(-height)
        needed = (width + 7) // 8
        for line, y in enumerate(rows):
            start = pixel_offset + line * bytes_per_line
            row = data[start:start + needed]
            if len(row) < needed:
                raise ValueError("BMP pixel data is truncated")
            for x in range(width):
                if (row[x >> 3] >> (7 - (x & 7))) & 1 == color_val:
                    self.draw_pixel(x_offset + x, y_offset + y)

    def show(self) -> None:
        """Send the whole frame buffer to the panel."""
        start, end = 0, self.width - 1
        if self.width == 64:
            start += 32
            end += 32
        self._commands(Command.SET_COL_ADDR, start, end,
                       Command.SET_PAGE_ADDR, 0, self.pages - 1)
        self.bus.write(self.address, bytes((_DATA_PREFIX,)) + bytes(self.buffer))

    def to_text(self) -> str:
        """Render the frame buffer as lines of text, '#' lit and '.' dark."""
        return "\n".join(
            "".join(_PIXEL_ON if self.pixel(x, y) else _PIXEL_OFF
                    for x in range(self.width))
            for y in range(self.height)
        )