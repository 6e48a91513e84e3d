"""Galton board simulation drawn on a 128x64 monochrome display."""

from __future__ import annotations

import argparse
import itertools
import math
import random
import time
from dataclasses import dataclass

from .ssd1306 import Display

SCREEN_WIDTH = 128
SCREEN_HEIGHT = 64
DISPLAY_ADDRESS = 0x3C

LEVELS = 11
DEFAULT_NUM_SLOTS = 9
HIST_HEIGHT = 16
HIST_WIDTH = 40
MAX_BALLS_PER_SLOT = 35
TICK_INTERVAL_MS = 100
MAX_BALLS = 10
MAX_TOTAL_BALLS = 150
GRAVITY = 0.1
SPAWN_Y = 16
FLOOR_Y = 51
SLOT_FLOOR_Y = 55
STACK_TOP_Y = 24
SLOT_COUNT_Y = 57
MAX_LABELLED_SLOTS = 10


@dataclass
class Ball:
    """A falling ball; ``final_x`` is where it is drawn and which slot it lands in."""

    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    level: int = 0
    final_x: int = 0
    active: bool = False


@dataclass
class Controls:
    """Button state for one tick; ``True`` means pressed."""

    button_a: bool = False
    button_b: bool = False
    switch: bool = False


class GaltonBoard:
    """State of the board: balls in flight and the counts collected in each slot."""

    def __init__(self, num_slots: int = DEFAULT_NUM_SLOTS, rng=None) -> None:
        if not 1 <= num_slots <= SCREEN_WIDTH:
            raise ValueError(
                f"number of slots must be between 1 and {SCREEN_WIDTH}, got {num_slots}"
            )
        self.num_slots = num_slots
        self.slot_width = SCREEN_WIDTH // num_slots
        self.rng = rng if rng is not None else random.Random()
        self.balls = [Ball() for _ in range(MAX_BALLS)]
        self.slots = [0] * num_slots
        self.total_balls = 0
        self.bias_left = False
        self.bias_right = False
        self.multiple_balls_mode = False
        self.tick_counter = 0
        self.spawn_ball(0)
        self.ball_count = 1

    def random_direction(self) -> int:
        """Step left (-1) or right (+1), weighted 90:10 towards a pressed bias."""
        r = self.rng.randrange(100)
        if self.bias_left:
            return -1 if r < 90 else 1
        if self.bias_right:
            return 1 if r < 90 else -1
        return -1 if r < 50 else 1

    def simulate_drop(self) -> int:
        """Walk a ball through every level of pegs and return the slot it reaches."""
        position = sum(self.random_direction() for _ in range(LEVELS))
        scaled = (position + LEVELS) * (self.num_slots - 1.0) / (LEVELS * 2)
        slot = math.floor(scaled + 0.5)
        return min(max(slot, 0), self.num_slots - 1)

    def spawn_ball(self, index: int) -> None:
        """Start a new ball in position ``index`` above its pre-computed slot."""
        final_x = self.simulate_drop() * self.slot_width
        self.balls[index] = Ball(x=float(final_x), y=float(SPAWN_Y),
                                 final_x=final_x, active=True)

    def update_balls(self) -> None:
        """Advance every active ball one tick and collect those that land."""
        for ball in self.balls:
            if not ball.active:
                continue
            ball.vy += GRAVITY
            ball.y += ball.vy
            ball.level += 1
            if ball.level <= LEVELS:
                ball.vx += self.random_direction() * 1.0
                ball.x += ball.vx
            if ball.y >= FLOOR_Y:
                ball.y = float(FLOOR_Y)
                slot = ball.final_x // self.slot_width
                if 0 <= slot < self.num_slots:
                    self.slots[slot] += 1
                    self.total_balls += 1
                ball.active = False
                self.ball_count -= 1

    def tick(self, controls: Controls | None = None) -> None:
        """Read the controls, release balls as allowed and advance the simulation."""
        controls = controls or Controls()
        self.bias_left = controls.button_a
        self.bias_right = controls.button_b
        if controls.switch:
            self.multiple_balls_mode = True

        if self.total_balls < MAX_TOTAL_BALLS:
            if (self.multiple_balls_mode and self.tick_counter % 10 == 0
                    and self.ball_count < MAX_BALLS):
                free = next(
                    (index for index, ball in enumerate(self.balls) if not ball.active),
                    None,
                )
                if free is not None:
                    self.spawn_ball(free)
                    self.ball_count += 1
            if not self.multiple_balls_mode and self.ball_count == 0:
                self.spawn_ball(0)
                self.ball_count = 1

        self.update_balls()
        self.tick_counter += 1

    def draw_frame(self, display: Display) -> None:
        """Draw the whole scene and send it to the display."""
        display.clear()
        draw_histogram_and_gauss(display, self.slots)
        draw_ball_count(display, self.total_balls)
        draw_slot_counts(display, self.slots)

        for ball in self.balls:
            if ball.active:
                display.draw_char(ball.final_x, int(ball.y), 1, "o")

        for index, count in enumerate(self.slots):
            left = index * self.slot_width
            for j in range(min(count, MAX_BALLS_PER_SLOT)):
                stack_y = SLOT_FLOOR_Y - j
                if stack_y >= STACK_TOP_Y:
                    display.draw_line(left, stack_y,
                                      left + self.slot_width - 4, stack_y)

        for index in range(self.num_slots):
            display.draw_square(index * self.slot_width, SLOT_FLOOR_Y,
                                self.slot_width - 3, 1)
        display.show()


def draw_histogram_and_gauss(display: Display, slots) -> None:
    """Draw a small bar chart of ``slots`` with a normal curve over it."""
    num_slots = len(slots)
    bar_width = HIST_WIDTH // num_slots
    x_offset = (HIST_WIDTH - bar_width * num_slots) // 2

    max_height = max(slots, default=0)
    scale_factor = HIST_HEIGHT / max_height if max_height > 0 else 1.0

    for index, count in enumerate(slots):
        bar_height = min(int(count * scale_factor), HIST_HEIGHT)
        display.draw_square(x_offset + index * bar_width, HIST_HEIGHT - bar_height,
                            bar_width - 1, bar_height)

    mu = HIST_WIDTH / 2
    sigma = HIST_WIDTH / 6.0
    for x in range(HIST_WIDTH):
        z = (x - mu) / sigma
        gauss = HIST_HEIGHT * math.exp(-z * z / 2)
        y = HIST_HEIGHT - int(gauss + 0.5)
        if 0 <= y < HIST_HEIGHT:
            display.draw_pixel(x, y)


def draw_ball_count(display: Display, count: int) -> None:
    """Write the number of collected balls in the top right corner."""
    display.draw_string(68, 0, 1, f"Qtde: {count}"[:15])


def draw_slot_counts(display: Display, slots) -> None:
    """Write each slot's count under it, when there are few enough slots."""
    if len(slots) > MAX_LABELLED_SLOTS:
        return
    slot_width = SCREEN_WIDTH // len(slots)
    for index, count in enumerate(slots):
        display.draw_string(index * slot_width, SLOT_COUNT_Y, 1, str(count)[:3])


class _NullBus:
    def write(self, address: int, data) -> None:
        pass


def main(argv=None) -> int:
    """Run the simulation, printing each frame as text."""
    parser = argparse.ArgumentParser(
        prog="galtonboard", description="Simulate a Galton board on a text display."
    )
    parser.add_argument("--slots", type=int, default=DEFAULT_NUM_SLOTS,
                        help="number of slots at the bottom of the board")
    parser.add_argument("--ticks", type=int, default=None,
                        help="stop after this many ticks (default: run forever)")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed for the random number generator")
    parser.add_argument("--delay", type=int, default=TICK_INTERVAL_MS,
                        help="milliseconds to wait between ticks")
    parser.add_argument("--bias", choices=("none", "left", "right"), default="none",
                        help="hold one of the bias buttons down")
    parser.add_argument("--multi", action="store_true",
                        help="release several balls at once")
    args = parser.parse_args(argv)

    try:
        board = GaltonBoard(args.slots, random.Random(args.seed))
    except ValueError as exc:
        parser.error(str(exc))
    display = Display(SCREEN_WIDTH, SCREEN_HEIGHT, DISPLAY_ADDRESS, _NullBus(),
                      external_vcc=False)
    display.clear()
    controls = Controls(button_a=args.bias == "left",
                        button_b=args.bias == "right",
                        switch=args.multi)

    ticks = itertools.count() if args.ticks is None else range(args.ticks)
    for _ in ticks:
        board.tick(controls)
        board.draw_frame(display)
        print(display.to_text())
        print()
        if args.delay > 0:
            time.sleep(args.delay / 1000)
    return 0