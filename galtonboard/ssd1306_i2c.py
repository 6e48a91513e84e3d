"""Fixed-size SSD1306 driver: 128x64 frame buffers, command lists and bitmap output."""

from __future__ import annotations

from dataclasses import dataclass

from .ssd1306 import Bus

HEIGHT = 64
WIDTH = 128
I2C_ADDRESS = 0x3C
I2C_CLOCK_KHZ = 400

SET_MEMORY_MODE = 0x20
SET_COLUMN_ADDRESS = 0x21
SET_PAGE_ADDRESS = 0x22
SET_HORIZONTAL_SCROLL = 0x26
SET_SCROLL = 0x2E
SET_DISPLAY_START_LINE = 0x40
SET_CONTRAST = 0x81
SET_CHARGE_PUMP = 0x8D
SET_SEGMENT_REMAP = 0xA0
SET_ENTIRE_ON = 0xA4
SET_ALL_ON = 0xA5
SET_NORMAL_DISPLAY = 0xA6
SET_INVERSE_DISPLAY = 0xA7
SET_MUX_RATIO = 0xA8
SET_DISPLAY = 0xAE
SET_COMMON_OUTPUT_DIRECTION = 0xC0
SET_COMMON_OUTPUT_DIRECTION_FLIP = 0xC0
SET_DISPLAY_OFFSET = 0xD3
SET_DISPLAY_CLOCK_DIVIDE_RATIO = 0xD5
SET_PRECHARGE = 0xD9
SET_COMMON_PIN_CONFIGURATION = 0xDA
SET_VCOMH_DESELECT_LEVEL = 0xDB

PAGE_HEIGHT = 8
N_PAGES = HEIGHT // PAGE_HEIGHT
BUFFER_LENGTH = N_PAGES * WIDTH

WRITE_MODE = 0xFE
READ_MODE = 0xFF

_COMMAND_PREFIX = 0x80
_DATA_PREFIX = 0x40


@dataclass
class RenderArea:
    """A rectangle of columns and pages to be refreshed on the panel."""

    start_column: int = 0
    end_column: int = WIDTH - 1
    start_page: int = 0
    end_page: int = N_PAGES - 1

    def buffer_length(self) -> int:
        """Number of frame buffer bytes covered by the area."""
        return ((self.end_column - self.start_column + 1)
                * (self.end_page - self.start_page + 1))


def new_buffer() -> bytearray:
    """Return a blank full-screen frame buffer."""
    return bytearray(BUFFER_LENGTH)


def set_pixel(buffer: bytearray, x: int, y: int, set: bool) -> None:
    """Turn the pixel at (x, y) on or off in a full-screen frame buffer."""
    if not (0 <= x < WIDTH and 0 <= y < HEIGHT):
        raise ValueError(f"pixel ({x}, {y}) lies outside the {WIDTH}x{HEIGHT} screen")
    index = (y // PAGE_HEIGHT) * WIDTH + x
    mask = 1 << (y % PAGE_HEIGHT)
    if set:
        buffer[index] |= mask
    else:
        buffer[index] &= ~mask & 0xFF


def draw_line(buffer: bytearray, x0: int, y0: int, x1: int, y1: int,
              set: bool) -> None:
    """Draw a line between two points with Bresenham's algorithm."""
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    error = dx + dy

    while True:
        set_pixel(buffer, x0, y0, set)
        if x0 == x1 and y0 == y1:
            break
        doubled = 2 * error
        if doubled >= dy:
            error += dy
            x0 += sx
        if doubled <= dx:
            error += dx
            y0 += sy


def font_index(char: str) -> int:
    """Glyph index of a character: letters from 1, digits from 27, else 0."""
    if len(char) != 1:
        raise ValueError(f"expected a single character, got {char!r}")
    if "A" <= char <= "Z":
        return ord(char) - ord("A") + 1
    if "0" <= char <= "9":
        return ord(char) - ord("0") + 27
    return 0


def init_commands() -> bytes:
    """Command sequence that brings the panel up."""
    pin_config = 0x12 if (WIDTH, HEIGHT) == (128, 64) else 0x02
    return bytes((
        SET_DISPLAY, SET_MEMORY_MODE, 0x00,
        SET_DISPLAY_START_LINE, SET_SEGMENT_REMAP | 0x01,
        SET_MUX_RATIO, HEIGHT - 1,
        SET_COMMON_OUTPUT_DIRECTION | 0x08, SET_DISPLAY_OFFSET, 0x00,
        SET_COMMON_PIN_CONFIGURATION, pin_config,
        SET_DISPLAY_CLOCK_DIVIDE_RATIO, 0x80,
        SET_PRECHARGE, 0xF1,
        SET_VCOMH_DESELECT_LEVEL, 0x30,
        SET_CONTRAST, 0xFF,
        SET_ENTIRE_ON, SET_NORMAL_DISPLAY,
        SET_CHARGE_PUMP, 0x14,
        SET_SCROLL | 0x00,
        SET_DISPLAY | 0x01,
    ))


def scroll_commands(enabled: bool) -> bytes:
    """Command sequence that sets up horizontal scrolling and turns it on or off."""
    return bytes((
        SET_HORIZONTAL_SCROLL | 0x00, 0x00, 0x00, 0x00, 0x03,
        0x00, 0xFF, SET_SCROLL | (0x01 if enabled else 0x00),
    ))


def render_commands(area: RenderArea) -> bytes:
    """Command sequence that selects the columns and pages of ``area``."""
    return bytes((
        SET_COLUMN_ADDRESS, area.start_column, area.end_column,
        SET_PAGE_ADDRESS, area.start_page, area.end_page,
    ))


class Driver:
    """Sends commands and frame data to a panel at a fixed I2C address."""

    def __init__(self, bus: Bus, address: int = I2C_ADDRESS) -> None:
        self.bus = bus
        self.address = address

    def send_command(self, command: int) -> None:
        """Send one command byte behind its control byte."""
        self.bus.write(self.address, bytes((_COMMAND_PREFIX, command & 0xFF)))

    def send_command_list(self, commands) -> None:
        """Send each command of a sequence in turn."""
        for command in commands:
            self.send_command(command)

    def send_buffer(self, data) -> None:
        """Send frame data in one write, preceded by the data control byte."""
        self.bus.write(self.address, bytes((_DATA_PREFIX,)) + bytes(data))

    def init(self) -> None:
        """Initialise the panel."""
        self.send_command_list(init_commands())

    def scroll(self, enabled: bool) -> None:
        """Turn horizontal scrolling on or off."""
        self.send_command_list(scroll_commands(enabled))

    def render(self, buffer, area: RenderArea) -> None:
        """Refresh ``area`` of the panel from the start of ``buffer``."""
        length = area.buffer_length()
        if len(buffer) < length:
            raise ValueError(f"buffer holds {len(buffer)} bytes, {length} are needed")
        self.send_command_list(render_commands(area))
        self.send_buffer(bytes(buffer[:length]))


class BitmapDisplay:
    """A panel fed whole bitmaps from a RAM buffer that carries its control byte."""

    def __init__(self, width: int, height: int, address: int, bus: Bus,
                 external_vcc: bool = False) -> None:
        self.width = width
        self.height = height
        self.pages = height // 8
        self.address = address
        self.bus = bus
        self.external_vcc = external_vcc
        self.bufsize = self.pages * width + 1
        self.ram_buffer = bytearray(self.bufsize)
        self.ram_buffer[0] = _DATA_PREFIX

    def command(self, command: int) -> None:
        """Send one command byte."""
        self.bus.write(self.address, bytes((_COMMAND_PREFIX, command & 0xFF)))

    def config(self) -> None:
        """Configure the panel for bitmap output."""
        for command in (
            SET_DISPLAY | 0x00,
            SET_MEMORY_MODE, 0x01,
            SET_DISPLAY_START_LINE | 0x00,
            SET_SEGMENT_REMAP | 0x01,
            SET_MUX_RATIO, HEIGHT - 1,
            SET_COMMON_OUTPUT_DIRECTION | 0x08,
            SET_DISPLAY_OFFSET, 0x00,
            SET_COMMON_PIN_CONFIGURATION, 0x12,
            SET_DISPLAY_CLOCK_DIVIDE_RATIO, 0x80,
            SET_PRECHARGE, 0xF1,
            SET_VCOMH_DESELECT_LEVEL, 0x30,
            SET_CONTRAST, 0xFF,
            SET_ENTIRE_ON,
            SET_NORMAL_DISPLAY,
            SET_CHARGE_PUMP, 0x14,
            SET_DISPLAY | 0x01,
        ):
            self.command(command)

    def send_data(self) -> None:
        """Select the whole screen and send the RAM buffer."""
        for command in (SET_COLUMN_ADDRESS, 0, self.width - 1,
                        SET_PAGE_ADDRESS, 0, self.pages - 1):
            self.command(command)
        self.bus.write(self.address, bytes(self.ram_buffer))

    def draw_bitmap(self, bitmap) -> None:
        """Copy a bitmap into the RAM buffer byte by byte, refreshing after each."""
        size = self.bufsize - 1
        if len(bitmap) < size:
            raise ValueError(f"bitmap holds {len(bitmap)} bytes, {size} are needed")
        for index, value in enumerate(bitmap[:size], start=1):
            self.ram_buffer[index] = value
            self.send_data()