import struct

import pytest

from galtonboard.font import FONT_8X5
from galtonboard.ssd1306 import Command, Display, RecordingBus

ADDRESS = 0x3C


def make_display(width=128, height=64, external_vcc=False):
    bus = RecordingBus()
    display = Display(width, height, ADDRESS, bus, external_vcc)
    return display, bus


def command_bytes(bus):
    return [data[1] for _, data in bus.writes if len(data) == 2 and data[0] == 0x00]


def lit(display):
    return sum(bin(byte).count("1") for byte in display.buffer)


def make_bmp(width, height, rows, palette=((0, 0, 0), (255, 255, 255)),
             bit_count=1, compression=0):
    bytes_per_line = ((width + 31) // 32) * 4
    pixels = b"".join(bytes(row).ljust(bytes_per_line, b"\0") for row in rows)
    table = b"".join(bytes((b, g, r, 0)) for r, g, b in palette)
    offset = 14 + 40 + len(table)
    file_header = struct.pack("<2sIHHI", b"BM", offset + len(pixels), 0, 0, offset)
    info = struct.pack("<IiiHHIIiiII", 40, width, height, 1, bit_count,
                       compression, len(pixels), 0, 0, 0, 0)
    return file_header + info + table + pixels


def test_init_writes_commands_to_address():
    display, bus = make_display()
    assert all(address == ADDRESS for address, _ in bus.writes)
    assert all(len(data) == 2 and data[0] == 0x00 for _, data in bus.writes)
    commands = command_bytes(bus)
    assert commands[0] == Command.SET_DISP
    assert commands[-2:] == [Command.SET_MEM_ADDR, 0x00]


def test_init_mux_ratio_follows_height():
    display, bus = make_display(height=32)
    commands = command_bytes(bus)
    index = commands.index(Command.SET_MUX_RATIO)
    assert commands[index + 1] == display.height - 1


@pytest.mark.parametrize("height, expected", [(32, 0x02), (64, 0x12)])
def test_init_com_pin_configuration(height, expected):
    _, bus = make_display(height=height)
    commands = command_bytes(bus)
    assert commands[commands.index(Command.SET_COM_PIN_CFG) + 1] == expected


@pytest.mark.parametrize("external, pump, precharge",
                         [(False, 0x14, 0xF1), (True, 0x10, 0x22)])
def test_init_vcc_dependent_values(external, pump, precharge):
    _, bus = make_display(external_vcc=external)
    commands = command_bytes(bus)
    assert commands[commands.index(Command.SET_CHARGE_PUMP) + 1] == pump
    assert commands[commands.index(Command.SET_PRECHARGE) + 1] == precharge


def test_invalid_geometry_rejected():
    with pytest.raises(ValueError):
        Display(0, 64, ADDRESS, RecordingBus())
    with pytest.raises(ValueError):
        Display(128, 12, ADDRESS, RecordingBus())


def test_power_commands():
    display, bus = make_display()
    bus.writes.clear()
    display.poweroff()
    display.poweron()
    assert bus.writes == [
        (ADDRESS, bytes((0x00, Command.SET_DISP))),
        (ADDRESS, bytes((0x00, Command.SET_DISP | 0x01))),
    ]


def test_contrast_commands():
    display, bus = make_display()
    bus.writes.clear()
    display.contrast(0x7F)
    assert command_bytes(bus) == [Command.SET_CONTRAST, 0x7F]


def test_contrast_out_of_range():
    display, _ = make_display()
    with pytest.raises(ValueError):
        display.contrast(256)


def test_invert_uses_lowest_bit():
    display, bus = make_display()
    bus.writes.clear()
    display.invert(1)
    display.invert(0)
    display.invert(2)
    assert command_bytes(bus) == [Command.SET_NORM_INV | 1,
                                  Command.SET_NORM_INV,
                                  Command.SET_NORM_INV]


def test_draw_pixel_sets_page_bit():
    display, _ = make_display()
    display.draw_pixel(3, 10)
    assert display.pixel(3, 10) is True
    assert display.buffer[3 + display.width * (10 >> 3)] == 1 << (10 & 7)
    assert lit(display) == 1


def test_out_of_bounds_pixels_are_ignored():
    display, _ = make_display()
    display.draw_pixel(display.width, 0)
    display.draw_pixel(0, display.height)
    display.draw_pixel(-1, 5)
    assert lit(display) == 0
    assert display.pixel(-1, 5) is False


def test_clear_pixel_and_clear():
    display, _ = make_display()
    display.draw_pixel(5, 5)
    display.draw_pixel(5, 6)
    display.clear_pixel(5, 5)
    assert display.pixel(5, 5) is False
    assert display.pixel(5, 6) is True
    display.clear()
    assert lit(display) == 0


def test_horizontal_line():
    display, _ = make_display()
    display.draw_line(0, 5, 10, 5)
    assert lit(display) == 11
    assert all(display.pixel(x, 5) for x in range(11))


def test_vertical_line_either_direction():
    forward, _ = make_display()
    backward, _ = make_display()
    forward.draw_line(4, 2, 4, 9)
    backward.draw_line(4, 9, 4, 2)
    assert forward.buffer == backward.buffer
    assert lit(forward) == 8


def test_diagonal_line():
    display, _ = make_display()
    display.draw_line(0, 0, 7, 7)
    assert all(display.pixel(i, i) for i in range(8))
    assert lit(display) == 8


def test_draw_and_clear_square():
    display, _ = make_display()
    display.draw_square(10, 20, 4, 3)
    assert lit(display) == 4 * 3
    display.clear_square(10, 20, 2, 3)
    assert lit(display) == 2 * 3
    assert display.pixel(10, 20) is False
    assert display.pixel(13, 22) is True


def test_empty_square_outline():
    display, _ = make_display()
    x, y, w, h = 2, 2, 5, 4
    display.draw_empty_square(x, y, w, h)
    assert display.pixel(x, y) and display.pixel(x + w, y + h)
    assert display.pixel(x + w, y) and display.pixel(x, y + h)
    assert display.pixel(x + 2, y + 2) is False


def test_draw_char_matches_glyph():
    display, _ = make_display()
    display.draw_char(0, 0, 1, "A")
    for column, bits in enumerate(FONT_8X5.glyph("A")):
        for row in range(8):
            assert display.pixel(column, row) == bool(bits >> row & 1)


def test_draw_char_scale_multiplies_area():
    small, _ = make_display()
    large, _ = make_display()
    small.draw_char(0, 0, 1, "A")
    large.draw_char(0, 0, 2, "A")
    assert lit(large) == 4 * lit(small)


def test_draw_char_outside_font_draws_nothing():
    display, _ = make_display()
    display.draw_char(0, 0, 1, "\x7f")
    assert lit(display) == 0


def test_draw_string_advances_by_font_width():
    text_display, _ = make_display()
    char_display, _ = make_display()
    text_display.draw_string(1, 8, 1, "AB")
    char_display.draw_char(1, 8, 1, "A")
    char_display.draw_char(1 + FONT_8X5.advance, 8, 1, "B")
    assert text_display.buffer == char_display.buffer


def test_show_sends_window_then_data():
    display, bus = make_display()
    display.draw_pixel(0, 0)
    bus.writes.clear()
    display.show()
    commands = [data[1] for _, data in bus.writes[:-1]]
    assert commands == [Command.SET_COL_ADDR, 0, display.width - 1,
                        Command.SET_PAGE_ADDR, 0, display.pages - 1]
    address, payload = bus.writes[-1]
    assert address == ADDRESS
    assert payload[0] == 0x40
    assert payload[1:] == bytes(display.buffer)
    assert len(payload) == display.width * display.pages + 1


def test_show_on_narrow_panel_offsets_columns():
    display, bus = make_display(width=64, height=48)
    bus.writes.clear()
    display.show()
    start, end = bus.writes[1][1][1], bus.writes[2][1][1]
    assert start == 32
    assert end - start == display.width - 1


def test_bmp_bottom_up_draws_dark_pixels():
    display, _ = make_display()
    display.show_bmp(make_bmp(8, 2, [[0xFF], [0x00]]))
    assert all(display.pixel(x, 0) for x in range(8))
    assert not any(display.pixel(x, 1) for x in range(8))
    assert lit(display) == 8


def test_bmp_top_down_with_offset():
    display, _ = make_display()
    display.show_bmp(make_bmp(8, -2, [[0xFF], [0x00]]), 10, 20)
    assert all(display.pixel(10 + x, 21) for x in range(8))
    assert not any(display.pixel(10 + x, 20) for x in range(8))


def test_bmp_with_black_second_in_palette():
    display, _ = make_display()
    bmp = make_bmp(8, 1, [[0xF0]], palette=((255, 255, 255), (0, 0, 0)))
    display.show_bmp(bmp)
    assert [display.pixel(x, 0) for x in range(8)] == [True] * 4 + [False] * 4


def test_bmp_rejected_formats_draw_nothing():
    display, _ = make_display()
    display.show_bmp(make_bmp(8, 1, [[0x00]], bit_count=8))
    display.show_bmp(make_bmp(8, 1, [[0x00]], compression=1))
    display.show_bmp(b"BM" + bytes(20))
    assert lit(display) == 0


def test_bmp_truncated_pixels_raise():
    display, _ = make_display()
    bmp = make_bmp(8, 2, [[0x00], [0x00]])
    with pytest.raises(ValueError):
        display.show_bmp(bmp[:-4])


def test_to_text_shape_and_content():
    display, _ = make_display(width=16, height=8)
    display.draw_pixel(1, 0)
    lines = display.to_text().splitlines()
    assert len(lines) == display.height
    assert all(len(line) == display.width for line in lines)
    assert lines[0].startswith(".#.")
    assert display.to_text().count("#") == 1