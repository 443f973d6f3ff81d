"""Rasterising physics debug drawing onto an RGBA image."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Sequence

from PIL import Image, ImageDraw

LINE_WIDTH = 2

Vector = tuple[float, float]
_MASK64 = (1 << 64) - 1


@dataclass(frozen=True)
class FColor:
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 0.0


@dataclass
class DrawOption:
    width: int
    height: int
    flags: int = 0
    outline: FColor = field(default_factory=FColor)
    constraint: FColor = field(default_factory=FColor)
    collision_point: FColor = field(default_factory=FColor)
    data: Any = None


def _scramble(val: int) -> int:
    # Robert Jenkins' 32-bit integer hash, on 64-bit words.
    val &= _MASK64
    val = ((val + 0x7ED55D16) + (val << 12)) & _MASK64
    val = (val ^ 0xC761C23C) ^ (val >> 19)
    val = ((val + 0x165667B1) + (val << 5)) & _MASK64
    val = ((val + 0xD3A2646C) ^ (val << 9)) & _MASK64
    val = ((val + 0xFD7046C5) + (val << 3)) & _MASK64
    val = (val ^ 0xB55A4F09) ^ (val >> 16)
    return val


def color_for_shape(
    hash_id: int,
    sensor: bool,
    sleeping: bool,
    idle_time: float,
    sleep_threshold: float,
    static: bool,
) -> FColor:
    """A stable colour for a shape, dimmed for sensors and resting bodies."""
    if sensor:
        return FColor(1, 1, 1, 0.1)
    if sleeping:
        return FColor(0.2, 0.2, 0.2, 1)
    if idle_time > sleep_threshold:
        return FColor(0.66, 0.66, 0.66, 1)

    val = _scramble(hash_id)
    r = float(val & 0xFF)
    g = float((val >> 8) & 0xFF)
    b = float((val >> 16) & 0xFF)
    high = max(r, g, b)
    low = min(r, g, b)
    intensity = 0.15 if static else 0.75
    if high == low:
        return FColor(intensity, 0, 0, 1)
    coef = intensity / (high - low)
    return FColor((r - low) * coef, (g - low) * coef, (b - low) * coef, 1)


def _rgba(color: FColor) -> tuple[int, int, int, int]:
    return tuple(  # type: ignore[return-value]
        max(0, min(255, round(v * 255))) for v in (color.r, color.g, color.b, color.a)
    )


class Drawer:
    """Draws in world coordinates: origin at the image centre, y pointing up."""

    def __init__(self, option: DrawOption) -> None:
        self.option = option
        self._image = Image.new("RGBA", (option.width, option.height), (0, 0, 0, 0))
        self._draw = ImageDraw.Draw(self._image)

    def _pt(self, v: Vector) -> tuple[float, float]:
        return self.option.width / 2 + v[0], self.option.height / 2 - v[1]

    def _disc(self, center: Vector, radius: float, fill=None, outline=None, width=1) -> None:
        x, y = self._pt(center)
        self._draw.ellipse(
            (x - radius, y - radius, x + radius, y + radius),
            fill=fill, outline=outline, width=width,
        )

    def new_frame(self) -> None:
        """Clear the image to transparent."""
        self._draw.rectangle((0, 0, *self._image.size), fill=(0, 0, 0, 0))

    def image(self) -> Image.Image:
        return self._image

    def draw_circle(
        self, pos: Vector, angle: float, radius: float, outline: FColor, fill: FColor
    ) -> None:
        """A filled circle with a radius line showing its rotation."""
        self._disc(pos, radius, fill=_rgba(fill), outline=_rgba(outline), width=LINE_WIDTH)
        reach = radius - LINE_WIDTH * 0.5
        end = (pos[0] + math.cos(angle) * reach, pos[1] + math.sin(angle) * reach)
        self.draw_fat_segment(pos, end, 0, outline, fill)

    def draw_segment(self, a: Vector, b: Vector, fill: FColor) -> None:
        self._draw.line((self._pt(a), self._pt(b)), fill=_rgba(fill), width=LINE_WIDTH)

    def draw_fat_segment(
        self, a: Vector, b: Vector, radius: float, outline: FColor, fill: FColor
    ) -> None:
        """A segment with round caps; zero radius draws a hairline in the outline colour."""
        width = radius * 2
        color = fill
        if width == 0:
            width = 1
            color = outline
        rgba = _rgba(color)
        pixels = max(1, round(width))
        self._draw.line((self._pt(a), self._pt(b)), fill=rgba, width=pixels)
        if pixels > 1:
            for end in (a, b):
                self._disc(end, width / 2, fill=rgba)

    def draw_polygon(self, verts: Sequence[Vector], outline: FColor, fill: FColor) -> None:
        if not verts:
            raise ValueError("polygon needs at least one vertex")
        points = [self._pt(v) for v in verts]
        self._draw.line(points + [points[0]], fill=_rgba(outline), width=LINE_WIDTH)
        if len(points) > 2:
            self._draw.polygon(points, fill=_rgba(fill))

    def draw_dot(self, size: float, pos: Vector, fill: FColor) -> None:
        self._disc(pos, size / 2 + LINE_WIDTH, fill=_rgba(fill))