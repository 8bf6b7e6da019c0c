# canvas.py
from __future__ import annotations
from typing import Union, TYPE_CHECKING

from .geometry import Rect, intersect
from .screen import DEFAULT_STYLE, Style

if TYPE_CHECKING:
    from .screen import Screen


# ############################################
#
# Canvas chain
#

class Canvas:
    """
    Drawing proxy of one view.

    Coordinates are local to the view. Anything outside the draw area is
    dropped here; the rest is translated by the offset and handed to the
    parent canvas, up to the ScreenCanvas at the root of the chain.
    """
    __slots__ = ('parent', 'brush', 'offset', 'draw')

    def __init__(self, parent: 'AnyCanvas', offset: Rect) -> None:
        self.parent     = parent
        self.brush      : Style = DEFAULT_STYLE
        self.offset     : Rect = offset
        self.draw       : Rect = offset.local()

    def set_brush(self, brush: Style) -> None:
        self.brush = brush

    def create_canvas_from(self, r: Rect) -> 'Canvas':
        return Canvas(self, r)

    def update_bounds(self, r: Rect) -> None:
        """ Called whenever the owning view moves or resizes """
        self.offset = r
        self.draw = r.local()

    # Primitives

    def print_char(self, x: int, y: int, ch: str) -> None:
        self.print_char_with_brush(x, y, ch, self.brush)

    def print_char_with_brush(self, x: int, y: int, ch: str, brush: Style) -> None:
        if not self.draw.contains(x, y):
            return
        self.parent.print_char_with_brush(x + self.offset.x, y + self.offset.y, ch, brush)

    def fill(self, bounds: Rect) -> None:
        self.fill_with_brush(bounds, self.brush)

    def fill_with_brush(self, bounds: Rect, brush: Style) -> None:
        area = intersect(bounds, self.draw)
        if area.is_empty():
            return
        self.parent.fill_with_brush(area.moved(self.offset.x, self.offset.y), brush)

    def print_text(self, x: int, y: int, text: str) -> None:
        for pos, ch in enumerate(text):
            self.print_char(x + pos, y, ch)


# ############################################
#
# Root canvas
#

class ScreenCanvas:
    """
    Root of every canvas chain, writes cells on the screen back-end.

    Writes outside the visible area are dropped. The area follows the screen
    size through update_bounds (after init and on every resize).
    """
    __slots__ = ('screen', 'brush', 'dirty', 'area')

    def __init__(self, screen: 'Screen', brush: Style = DEFAULT_STYLE) -> None:
        width, height = screen.size()
        self.screen     = screen
        self.brush      = brush
        self.dirty      = False
        self.area       = Rect(0, 0, width, height)

    def set_brush(self, brush: Style) -> None:
        self.brush = brush

    def create_canvas_from(self, r: Rect) -> Canvas:
        return Canvas(self, r)

    def update_bounds(self, r: Rect) -> None:
        self.area = r.local()

    def print_char(self, x: int, y: int, ch: str) -> None:
        self.print_char_with_brush(x, y, ch, self.brush)

    def print_char_with_brush(self, x: int, y: int, ch: str, brush: Style) -> None:
        if not self.area.contains(x, y):
            return
        self.screen.set_cell(x, y, ch, brush)
        self.dirty = True

    def fill(self, bounds: Rect) -> None:
        self.fill_with_brush(bounds, self.brush)

    def fill_with_brush(self, bounds: Rect, brush: Style) -> None:
        area = intersect(bounds, self.area)
        if area.is_empty():
            return
        for y in range(area.y, area.bottom):
            for x in range(area.x, area.right):
                self.screen.set_cell(x, y, ' ', brush)
        self.dirty = True

    def print_text(self, x: int, y: int, text: str) -> None:
        for pos, ch in enumerate(text):
            self.print_char(x + pos, y, ch)


AnyCanvas = Union[Canvas, ScreenCanvas]
