# galtonboard

A Galton board simulation. Each ball takes eleven random left-or-right steps
through the pegs. Those steps decide which slot it lands in. The landed balls
build up a histogram, which is drawn next to a reference Gaussian curve. All
drawing goes to an in-memory model of a 128x64 SSD1306 monochrome OLED
display.

## Installing

```
pip install .
```

To install pytest as well, add the `test` extra:

```
pip install ".[test]"
```

## Running

```
galtonboard
```

This runs the simulation and prints every frame of the display as text, with
`#` for a lit pixel and `.` for a dark one. By default it runs until
interrupted.

Options:

- `--slots N`: the number of slots at the bottom of the board. The default is
  9. The value must be between 1 and 128.
- `--ticks N`: stop after N ticks. Without it the simulation runs forever.
- `--seed N`: the seed for the random number generator.
- `--delay MS`: the milliseconds to wait between ticks. The default is 100;
  0 means no wait.
- `--bias {none,left,right}`: hold one bias button down for the whole run. A
  biased ball steps towards that side 90% of the time.
- `--multi`: release several balls at once.

## Using the library

```python
import random

from galtonboard.board import Controls, GaltonBoard
from galtonboard.ssd1306 import Display, RecordingBus

bus = RecordingBus()
display = Display(128, 64, 0x3C, bus, False)

board = GaltonBoard(9, random.Random(1))
for _ in range(200):
    board.tick(Controls())
    board.draw_frame(display)

print(display.to_text())
```

`Controls` holds the board's three inputs for one tick:

- `button_a` biases the balls to the left.
- `button_b` biases the balls to the right.
- `switch` turns on multiple-ball mode, which stays on once set.

Without multiple-ball mode, a new ball is dropped as soon as the previous one
has landed. In multiple-ball mode, a ball is dropped on every tenth tick as
long as fewer than ten balls are falling. No new balls are dropped once 150
have landed.

A frame shows four things:

- the histogram and Gaussian curve in the top left;
- the landed-ball count ("Qtde: N") in the top right;
- the falling balls and the stacks in each slot;
- each slot's count under it, when there are at most ten slots.

### Modules

- `galtonboard.font`: `Font`, a fixed-width column-major bitmap font.
  `Font.from_bytes` loads a font, and `glyph` and `has_glyph` look up
  characters. The module also provides the built-in `FONT_8X5`.
- `galtonboard.ssd1306`: `Display`, a page-organised frame buffer. It covers
  pixels, lines, filled and empty squares, characters and strings, and
  uncompressed monochrome BMP images (`show_bmp`). `show()` sends the buffer
  and `to_text()` renders it as text. The module also holds the `Command`
  enum of command bytes. `RecordingBus` keeps every I2C write it receives, so
  the byte stream can be inspected.
- `galtonboard.ssd1306_i2c`: fixed-size 128x64 helpers:
  - `RenderArea`, `new_buffer`, `set_pixel` and `draw_line` (Bresenham);
  - `font_index`;
  - the command builders `init_commands`, `scroll_commands` and
    `render_commands`;
  - `Driver` and `BitmapDisplay`, which write to any object with a
    `write(address, data)` method.
- `galtonboard.board`: the simulation (`GaltonBoard`, `Ball`, `Controls`) and
  the drawing functions `draw_histogram_and_gauss`, `draw_ball_count` and
  `draw_slot_counts`. It also holds `main`, which the `galtonboard` command
  runs.

## What it does not do

The package does not talk to real hardware. There is no I2C bus driver, and
there are no physical buttons. Display traffic goes to whatever bus object you
pass in. The `galtonboard` command discards that traffic and prints the frame
buffer to the terminal instead.