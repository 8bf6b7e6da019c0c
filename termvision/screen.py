# screen.py
from __future__ import annotations
from enum import IntEnum, IntFlag
from dataclasses import dataclass, replace
from typing import Deque, Dict, Optional, Protocol, Set, Tuple, Union

import curses
import logging
import threading
import time
from collections import deque

log = logging.getLogger(__name__)


# ############################################
#
# Styles
#

class Color(IntEnum):
    DEFAULT = -1
    BLACK = 0
    RED = 1
    GREEN = 2
    YELLOW = 3
    BLUE = 4
    MAGENTA = 5
    CYAN = 6
    WHITE = 7
    GRAY = 8
    BRIGHT_RED = 9
    BRIGHT_GREEN = 10
    BRIGHT_YELLOW = 11
    BRIGHT_BLUE = 12
    BRIGHT_MAGENTA = 13
    BRIGHT_CYAN = 14
    BRIGHT_WHITE = 15


@dataclass(frozen=True)
class Style:
    fg: Color = Color.DEFAULT
    bg: Color = Color.DEFAULT
    reverse: bool = False
    bold: bool = False

    def reversed(self) -> 'Style':
        return replace(self, reverse=not self.reverse)


DEFAULT_STYLE = Style()


# ############################################
#
# Input events
#

class Key(IntEnum):
    # control characters keep their ASCII code
    CTRL_A = 1
    CTRL_B = 2
    CTRL_C = 3
    CTRL_D = 4
    BACKSPACE = 8
    TAB = 9
    ENTER = 13
    ESCAPE = 27
    DELETE_CHAR = 127

    RUNE = 256
    UP = 257
    DOWN = 258
    LEFT = 259
    RIGHT = 260
    HOME = 261
    END = 262
    PAGE_UP = 263
    PAGE_DOWN = 264
    INSERT = 265
    DELETE = 266
    BACKTAB = 267
    F1 = 271
    F2 = 272
    F3 = 273
    F4 = 274


class Modifier(IntFlag):
    NONE = 0
    SHIFT = 1
    CTRL = 2
    ALT = 4


class Button(IntFlag):
    NONE = 0
    LEFT = 1
    MIDDLE = 2
    RIGHT = 4


@dataclass(frozen=True)
class KeyEvent:
    key: int
    ch: str = ''
    modifiers: Modifier = Modifier.NONE


@dataclass(frozen=True)
class MouseEvent:
    x: int
    y: int
    buttons: Button = Button.NONE


@dataclass(frozen=True)
class ResizeEvent:
    width: int
    height: int


InputEvent = Union[KeyEvent, MouseEvent, ResizeEvent]


def key_for_control(code: int) -> KeyEvent:
    """ KeyEvent for a raw control character (1..31) """
    if code in (10, 13):
        return KeyEvent(Key.ENTER)
    if code == Key.TAB:
        return KeyEvent(Key.TAB)
    if code == Key.ESCAPE:
        return KeyEvent(Key.ESCAPE)
    if code == Key.BACKSPACE:
        return KeyEvent(Key.BACKSPACE)
    return KeyEvent(code, chr(code + 96), Modifier.CTRL)


# ############################################
#
# Back-end contract
#

class Screen(Protocol):
    """Character cell display the application draws on and polls input from."""

    def init(self) -> None: ...

    def shutdown(self) -> None: ...

    def clear(self) -> None: ...

    def sync(self) -> None: ...

    def size(self) -> Tuple[int, int]: ...

    def set_cell(self, x: int, y: int, ch: str, style: Style) -> None: ...

    def get_cell(self, x: int, y: int) -> Tuple[str, Style]: ...

    def poll_event(self) -> Optional[InputEvent]:
        """Block until input arrives; None once the screen is shut down."""
        ...

    def enable_mouse(self) -> None: ...


class CellBuffer:
    """ Cells written since the last sync, shared by the concrete screens """
    __slots__ = ('cells', 'changed', 'width', 'height')

    def __init__(self, width: int = 0, height: int = 0) -> None:
        self.cells      : Dict[Tuple[int, int], Tuple[str, Style]] = {}
        self.changed    : Set[Tuple[int, int]] = set()
        self.width      = width
        self.height     = height

    def put(self, x: int, y: int, ch: str, style: Style) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return
        self.cells[(x, y)] = (ch, style)
        self.changed.add((x, y))

    def get(self, x: int, y: int) -> Tuple[str, Style]:
        return self.cells.get((x, y), (' ', DEFAULT_STYLE))

    def resize(self, width: int, height: int) -> None:
        self.width, self.height = width, height
        self.cells = {k: v for k, v in self.cells.items() if k[0] < width and k[1] < height}
        self.changed = set(self.cells)

    def reset(self) -> None:
        self.cells.clear()
        self.changed.clear()

    def take_changes(self) -> Dict[Tuple[int, int], Tuple[str, Style]]:
        out = {pos: self.get(*pos) for pos in self.changed}
        self.changed.clear()
        return out


# ############################################
#
# curses back-end
#

_CURSES_KEYS = {
    curses.KEY_UP: Key.UP,
    curses.KEY_DOWN: Key.DOWN,
    curses.KEY_LEFT: Key.LEFT,
    curses.KEY_RIGHT: Key.RIGHT,
    curses.KEY_HOME: Key.HOME,
    curses.KEY_END: Key.END,
    curses.KEY_PPAGE: Key.PAGE_UP,
    curses.KEY_NPAGE: Key.PAGE_DOWN,
    curses.KEY_IC: Key.INSERT,
    curses.KEY_DC: Key.DELETE,
    curses.KEY_BTAB: Key.BACKTAB,
    curses.KEY_BACKSPACE: Key.BACKSPACE,
    curses.KEY_ENTER: Key.ENTER,
    curses.KEY_F1: Key.F1,
    curses.KEY_F2: Key.F2,
    curses.KEY_F3: Key.F3,
    curses.KEY_F4: Key.F4,
}


class CursesScreen:
    """
    Screen on the controlling terminal through the curses module.

    Cells are buffered and only the ones changed since the last sync() are
    pushed to curses. Input is read in no-delay mode so drawing (run loop
    thread) and polling (poller thread) can share the curses window under a
    lock.
    """
    __slots__ = ('_window', '_lock', '_buffer', '_pairs', '_pending',
                 '_buttons', '_colors', 'poll_interval')

    def __init__(self, poll_interval: float = 0.01) -> None:
        self._window    : Optional['curses.window'] = None
        self._lock      = threading.RLock()
        self._buffer    = CellBuffer()
        self._pairs     : Dict[Tuple[int, int], int] = {}
        self._pending   : Deque[InputEvent] = deque()
        self._buttons   = Button.NONE
        self._colors    = 8
        self.poll_interval = poll_interval

    # Lifecycle

    def init(self) -> None:
        with self._lock:
            window = curses.initscr()
            try:
                curses.noecho()
                curses.raw()
                window.keypad(True)
                window.nodelay(True)
                if curses.has_colors():
                    curses.start_color()
                    curses.use_default_colors()
                    self._colors = curses.COLORS
                try:
                    curses.curs_set(0)
                except curses.error:
                    log.debug("[curses] terminal cannot hide the cursor")
            except curses.error:
                curses.endwin()
                raise
            self._window = window
            height, width = window.getmaxyx()
            self._buffer.resize(width, height)
            log.debug("[curses] init %dx%d, %d colors", width, height, self._colors)

    def shutdown(self) -> None:
        with self._lock:
            if self._window is None:
                return
            self._window.keypad(False)
            curses.noraw()
            curses.echo()
            curses.endwin()
            self._window = None
            log.debug("[curses] shutdown")

    def enable_mouse(self) -> None:
        with self._lock:
            curses.mousemask(curses.ALL_MOUSE_EVENTS | curses.REPORT_MOUSE_POSITION)
            curses.mouseinterval(0)

    # Drawing

    def size(self) -> Tuple[int, int]:
        return (self._buffer.width, self._buffer.height)

    def set_cell(self, x: int, y: int, ch: str, style: Style) -> None:
        with self._lock:
            self._buffer.put(x, y, ch, style)

    def get_cell(self, x: int, y: int) -> Tuple[str, Style]:
        with self._lock:
            return self._buffer.get(x, y)

    def clear(self) -> None:
        with self._lock:
            self._buffer.reset()
            if self._window is not None:
                self._window.erase()

    def sync(self) -> None:
        with self._lock:
            if self._window is None:
                return
            for (x, y), (ch, style) in self._buffer.take_changes().items():
                try:
                    self._window.addstr(y, x, ch, self._attr(style))
                except curses.error:
                    # the bottom right cell moves the cursor out of the window
                    pass
            self._window.refresh()

    def _attr(self, style: Style) -> int:
        attr = 0
        fg, bg = int(style.fg), int(style.bg)
        if fg >= self._colors:
            fg -= 8
            attr |= curses.A_BOLD
        if bg >= self._colors:
            bg -= 8
        key = (fg, bg)
        if key not in self._pairs and curses.has_colors():
            pair = len(self._pairs) + 1
            if pair < curses.COLOR_PAIRS:
                curses.init_pair(pair, fg, bg)
                self._pairs[key] = pair
        attr |= curses.color_pair(self._pairs.get(key, 0))
        if style.reverse:
            attr |= curses.A_REVERSE
        if style.bold:
            attr |= curses.A_BOLD
        return attr

    # Input

    def poll_event(self) -> Optional[InputEvent]:
        while True:
            with self._lock:
                if self._pending:
                    return self._pending.popleft()
                if self._window is None:
                    return None
                try:
                    wch = self._window.get_wch()
                except curses.error:
                    wch = None
                if wch is not None:
                    self._translate(wch)
                    if self._pending:
                        return self._pending.popleft()
            time.sleep(self.poll_interval)

    def _translate(self, wch: Union[int, str]) -> None:
        if isinstance(wch, str):
            code = ord(wch)
            if code < 32:
                self._pending.append(key_for_control(code))
            elif code == Key.DELETE_CHAR:
                self._pending.append(KeyEvent(Key.BACKSPACE))
            else:
                self._pending.append(KeyEvent(Key.RUNE, wch))
        elif wch == curses.KEY_RESIZE:
            height, width = self._window.getmaxyx()
            self._buffer.resize(width, height)
            self._pending.append(ResizeEvent(width, height))
        elif wch == curses.KEY_MOUSE:
            self._translate_mouse()
        elif wch in _CURSES_KEYS:
            self._pending.append(KeyEvent(_CURSES_KEYS[wch]))
        else:
            log.debug("[curses] unmapped key %r", wch)

    def _translate_mouse(self) -> None:
        try:
            _, x, y, _, bstate = curses.getmouse()
        except curses.error:
            return
        for button, pressed, released, clicked in (
                (Button.LEFT, curses.BUTTON1_PRESSED, curses.BUTTON1_RELEASED, curses.BUTTON1_CLICKED),
                (Button.RIGHT, curses.BUTTON3_PRESSED, curses.BUTTON3_RELEASED, curses.BUTTON3_CLICKED)):
            if bstate & clicked:
                # report a click as a press followed by a release
                self._pending.append(MouseEvent(x, y, self._buttons | button))
                self._buttons &= ~button
            elif bstate & pressed:
                self._buttons |= button
            elif bstate & released:
                self._buttons &= ~button
        self._pending.append(MouseEvent(x, y, self._buttons))
