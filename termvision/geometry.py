# geometry.py
from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def contains(self, x: int, y: int) -> bool:
        return in_horizontal(x, self) and in_vertical(y, self)

    def moved(self, dx: int, dy: int) -> 'Rect':
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    def local(self) -> 'Rect':
        """ Same size, origin at (0, 0) """
        return Rect(0, 0, self.width, self.height)


EMPTY = Rect()


def in_horizontal(x: int, r: Rect) -> bool:
    return r.x <= x < r.x + r.width


def in_vertical(y: int, r: Rect) -> bool:
    return r.y <= y < r.y + r.height


def intersect(r1: Rect, r2: Rect) -> Rect:
    """
    Overlapping part of r1 and r2.

    Each axis is computed on its own; when either span is empty the result
    is the zero rectangle, never a zero-sized rectangle at some position.
    """
    if in_horizontal(r2.x, r1) or in_horizontal(r1.x, r2):
        left = max(r1.x, r2.x)
        width = max(0, min(r1.right, r2.right) - left)
    else:
        left, width = 0, 0

    if in_vertical(r2.y, r1) or in_vertical(r1.y, r2):
        top = max(r1.y, r2.y)
        height = max(0, min(r1.bottom, r2.bottom) - top)
    else:
        top, height = 0, 0

    if width == 0 or height == 0:
        return EMPTY
    return Rect(left, top, width, height)
