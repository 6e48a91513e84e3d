"""Galton board simulation drawn on an in-memory SSD1306 OLED display model."""

__version__ = "0.1.0"
__all__ = ["board", "font", "ssd1306", "ssd1306_i2c"]