from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional, Sequence, TYPE_CHECKING

from .bus import APPLICATION, Message, MessageBus, Packet
from .elements import MAX_ZORDER, UIComponent, UIView
from .geometry import Rect
from .screen import Color, Style

if TYPE_CHECKING:
    from .canvas import AnyCanvas, Canvas

log = logging.getLogger(__name__)


class BorderType(IntEnum):
    BORDER_SINGLE = 0
    BORDER_DOUBLE = 1
    BORDER_EMPTY = 2


# Index of each glyph in a border set
UL_CORNER = 0
H_LINE = 1
CLOSE_LEFT = 2
CLOSE_RIGHT = 3
CLOSE = 4
UR_CORNER = 5
CAPTION_SPACE = 6
LL_CORNER = 7
LR_CORNER = 8
V_LINE = 9

BORDER_CHARS = {
    BorderType.BORDER_SINGLE: ('┌', '─', '[', ']', '■', '┐', ' ', '└', '┘', '│'),
    BorderType.BORDER_DOUBLE: ('╔', '═', '[', ']', '■', '╗', ' ', '╚', '╝', '║'),
    BorderType.BORDER_EMPTY:  (' ', ' ', '[', ']', '■', ' ', ' ', ' ', ' ', ' '),
}

# ┌─[■]─┐
MIN_TITLE_BAR = 7
# one space on each side of the caption
MIN_TITLE_BAR_WITH_CAPTION = MIN_TITLE_BAR + 2


@dataclass
class WindowBorder:
    type: BorderType = BorderType.BORDER_SINGLE
    background_color: Color = Color.GRAY
    foreground_color: Color = Color.WHITE


# UIWindow

class UIWindow(UIView):
    __slots__ = ('caption', 'border')

    def __init__(self, name: str, bus: MessageBus, parent_canvas: 'AnyCanvas') -> None:
        super().__init__(name, bus, parent_canvas)
        self.caption = name
        self.border = WindowBorder()
        self.background_color = Color.GRAY
        self.foreground_color = Color.WHITE

    def get_client_bounds(self) -> Rect:
        """ Inside of the title bar, bottom bar and side borders """
        bounds = self.bounds
        return Rect(1, 1, bounds.width - 2, bounds.height - 2)

    # Drawing

    def draw(self) -> None:
        if not self.visible:
            return
        canvas = self.canvas
        width, height = self.bounds.width, self.bounds.height

        # Background
        canvas.set_brush(Style(self.foreground_color, self.background_color))
        canvas.fill(self.bounds.local())

        # Chrome
        canvas.set_brush(Style(self.border.foreground_color,
                               self.border.background_color,
                               bold=self.focused))
        borders = BORDER_CHARS[self.border.type]
        draw_title_bar(canvas, Rect(0, 0, width, 1), self.caption, borders)
        draw_bottom_bar(canvas, Rect(0, height - 1, width, 1), borders)
        draw_side_border(canvas, Rect(0, 1, 1, height - 2), borders)
        draw_side_border(canvas, Rect(width - 1, 1, 1, height - 2), borders)

    def process_message(self, packet: Packet) -> None:
        if packet.kind == Message.M_CHANGE_BOUNDS:
            # room for the corners at least
            r = packet.data
            packet = Packet(packet.receiver, packet.kind,
                            Rect(r.x, r.y, max(r.width, 2), max(r.height, 2)))
        super().process_message(packet)


def build_create_window_message(w: UIView) -> Packet:
    return Packet(APPLICATION, Message.M_CREATE, w)


def build_destroy_window_message(w: UIView) -> Packet:
    return Packet(APPLICATION, Message.M_DESTROY, w)


# Chrome helpers

def draw_title_bar(canvas: 'Canvas', bounds: Rect, caption: str, borders: Sequence[str]) -> None:
    x, y, width = bounds.x, bounds.y, bounds.width
    index = 0

    canvas.print_char(x + index, y, borders[UL_CORNER])
    index += 1

    if width >= MIN_TITLE_BAR:
        for glyph in (H_LINE, CLOSE_LEFT, CLOSE, CLOSE_RIGHT):
            canvas.print_char(x + index, y, borders[glyph])
            index += 1

        if width > MIN_TITLE_BAR_WITH_CAPTION:
            padding_left = (width - len(caption) - 2) // 2

            # ──── Caption
            while index < padding_left:
                canvas.print_char(x + index, y, borders[H_LINE])
                index += 1

            if width > len(caption) + MIN_TITLE_BAR_WITH_CAPTION:
                text = caption
            else:
                text = caption[:width - MIN_TITLE_BAR_WITH_CAPTION]

            canvas.print_char(x + index, y, borders[CAPTION_SPACE])
            index += 1
            for ch in text:
                canvas.print_char(x + index, y, ch)
                index += 1
            canvas.print_char(x + index, y, borders[CAPTION_SPACE])
            index += 1

    # last char is the corner
    while index < width - 1:
        canvas.print_char(x + index, y, borders[H_LINE])
        index += 1

    canvas.print_char(x + index, y, borders[UR_CORNER])


def draw_bottom_bar(canvas: 'Canvas', bounds: Rect, borders: Sequence[str]) -> None:
    canvas.print_char(bounds.x, bounds.y, borders[LL_CORNER])
    for index in range(1, bounds.width - 1):
        canvas.print_char(bounds.x + index, bounds.y, borders[H_LINE])
    canvas.print_char(bounds.x + max(bounds.width - 1, 1), bounds.y, borders[LR_CORNER])


def draw_side_border(canvas: 'Canvas', bounds: Rect, borders: Sequence[str]) -> None:
    for index in range(bounds.height):
        canvas.print_char(bounds.x, bounds.y + index, borders[V_LINE])


# UITimer

OnTimer = Callable[['UITimer'], None]


class _TimerTask:
    """ One wait loop of a timer; stopped through its cancellation event """
    __slots__ = ('interval', 'fire', 'cancelled', 'thread')

    def __init__(self, interval: float, fire: Callable[[], None], name: str) -> None:
        self.interval   = interval
        self.fire       = fire
        self.cancelled  = threading.Event()
        self.thread     = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self.thread.start()

    def cancel(self) -> None:
        self.cancelled.set()

    def _run(self) -> None:
        while not self.cancelled.wait(self.interval):
            self.fire()


class UITimer(UIComponent):
    """
    Periodic timer living in the component tree.

    Every interval (seconds) it calls on_timer on its own thread, or, when no
    callback is set, posts M_TIMER to its parent so the run loop handles it.
    Callbacks must not touch the tree directly; go through the bus instead.
    """
    __slots__ = ('_interval', '_task', 'on_timer')

    def __init__(self, name: str, bus: MessageBus, interval: float) -> None:
        super().__init__(name, bus)
        self._interval  = interval
        self._task      : Optional[_TimerTask] = None
        self.on_timer   : Optional[OnTimer] = None
        self.zorder     = MAX_ZORDER

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        self._interval = value
        if self._task is not None:
            self._stop()
            self._start()

    @property
    def running(self) -> bool:
        return self._task is not None

    def set_enabled(self, status: bool) -> None:
        was_enabled = self.enabled
        super().set_enabled(status)
        if self.enabled and not was_enabled:
            self._start()
        elif was_enabled and not self.enabled:
            self._stop()

    def _start(self) -> None:
        self._task = _TimerTask(self._interval, self._fire, f"timer-{self.name}")
        self._task.start()
        log.debug("[timer] %s started, every %.3fs", self.name, self._interval)

    def _stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            log.debug("[timer] %s cancelled", self.name)

    def _fire(self) -> None:
        if self.on_timer is not None:
            self.on_timer(self)
            return
        parent = self.parent
        if parent is not None:
            self.bus.send(Packet(parent.address, Message.M_TIMER, self.address))
