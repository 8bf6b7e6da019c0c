# pgscreen.py
from __future__ import annotations
import logging
import threading
import queue
from typing import Dict, List, Optional, Tuple

import pygame

from .screen import (Button, CellBuffer, Color, InputEvent, Key, KeyEvent,
                     Modifier, MouseEvent, ResizeEvent, Style, key_for_control)

log = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

PALETTE: Dict[Color, RGB] = {
    Color.BLACK: (0, 0, 0),
    Color.RED: (170, 0, 0),
    Color.GREEN: (0, 170, 0),
    Color.YELLOW: (170, 85, 0),
    Color.BLUE: (0, 0, 170),
    Color.MAGENTA: (170, 0, 170),
    Color.CYAN: (0, 170, 170),
    Color.WHITE: (170, 170, 170),
    Color.GRAY: (85, 85, 85),
    Color.BRIGHT_RED: (255, 85, 85),
    Color.BRIGHT_GREEN: (85, 255, 85),
    Color.BRIGHT_YELLOW: (255, 255, 85),
    Color.BRIGHT_BLUE: (85, 85, 255),
    Color.BRIGHT_MAGENTA: (255, 85, 255),
    Color.BRIGHT_CYAN: (85, 255, 255),
    Color.BRIGHT_WHITE: (255, 255, 255),
}

DEFAULT_FOREGROUND: RGB = PALETTE[Color.WHITE]
DEFAULT_BACKGROUND: RGB = PALETTE[Color.BLACK]

_PYGAME_KEYS = {
    pygame.K_UP: Key.UP,
    pygame.K_DOWN: Key.DOWN,
    pygame.K_LEFT: Key.LEFT,
    pygame.K_RIGHT: Key.RIGHT,
    pygame.K_HOME: Key.HOME,
    pygame.K_END: Key.END,
    pygame.K_PAGEUP: Key.PAGE_UP,
    pygame.K_PAGEDOWN: Key.PAGE_DOWN,
    pygame.K_INSERT: Key.INSERT,
    pygame.K_DELETE: Key.DELETE,
    pygame.K_BACKSPACE: Key.BACKSPACE,
    pygame.K_RETURN: Key.ENTER,
    pygame.K_KP_ENTER: Key.ENTER,
    pygame.K_ESCAPE: Key.ESCAPE,
    pygame.K_F1: Key.F1,
    pygame.K_F2: Key.F2,
    pygame.K_F3: Key.F3,
    pygame.K_F4: Key.F4,
}

_PYGAME_BUTTONS = {1: Button.LEFT, 2: Button.MIDDLE, 3: Button.RIGHT}


def style_colors(style: Style) -> Tuple[RGB, RGB]:
    """ Foreground and background RGB of a style, bold brightens the low 8 colors """
    fg = style.fg
    if style.bold and 0 <= fg < 8:
        fg = Color(fg + 8)
    fore = PALETTE.get(fg, DEFAULT_FOREGROUND)
    back = PALETTE.get(style.bg, DEFAULT_BACKGROUND)
    if style.reverse:
        fore, back = back, fore
    return fore, back


def modifiers_of(mod: int) -> Modifier:
    out = Modifier.NONE
    if mod & pygame.KMOD_SHIFT:
        out |= Modifier.SHIFT
    if mod & pygame.KMOD_CTRL:
        out |= Modifier.CTRL
    if mod & pygame.KMOD_ALT:
        out |= Modifier.ALT
    return out


Frame = Tuple[bool, Dict[Tuple[int, int], Tuple[str, Style]]]


class PygameScreen:
    """
    Cell grid rendered in a pygame window with a monospace font.

    SDL is only touched from the display thread started by init. It opens the
    window, pumps pygame events into the queue read by poll_event and paints
    the frames handed over by sync. Closing the window is reported as Ctrl+C
    so the default quit key ends the application.
    """
    __slots__ = ('columns', 'rows', 'font_size', 'title', 'fps', '_lock',
                 '_buffer', '_cleared', '_surface', '_font', '_cell', '_buttons',
                 '_show_mouse', '_events', '_frames', '_thread', '_ready', '_stop',
                 '_failure')

    def __init__(self, columns: int = 80, rows: int = 25, font_size: int = 16,
                 title: str = "termvision", fps: int = 60) -> None:
        self.columns        = columns
        self.rows           = rows
        self.font_size      = font_size
        self.title          = title
        self.fps            = fps
        self._lock          = threading.RLock()
        self._buffer        = CellBuffer()
        self._cleared       = False
        self._surface       : Optional[pygame.Surface] = None
        self._font          : Optional[pygame.font.Font] = None
        self._cell          = (0, 0)
        self._buttons       = Button.NONE
        self._show_mouse    = False
        self._events        : queue.Queue = queue.Queue()
        self._frames        : queue.Queue = queue.Queue()
        self._thread        : Optional[threading.Thread] = None
        self._ready         = threading.Event()
        self._stop          = threading.Event()
        self._failure       : Optional[Exception] = None

    # Lifecycle

    def init(self) -> None:
        """ Start the display thread and wait until the window is open """
        self._thread = threading.Thread(target=self._display_loop,
                                        name="termvision-display", daemon=True)
        self._thread.start()
        self._ready.wait()
        if self._failure is not None:
            self._thread.join()
            self._thread = None
            raise self._failure
        log.debug("[pygame] init %dx%d cells of %dx%d px",
                  self.columns, self.rows, self._cell[0], self._cell[1])

    def shutdown(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._thread = None
        self._stop.set()
        if thread is not threading.current_thread():
            thread.join()
        log.debug("[pygame] shutdown")

    def enable_mouse(self) -> None:
        self._show_mouse = True

    # Display thread

    def _display_loop(self) -> None:
        try:
            try:
                self._open()
            except Exception as exc:
                self._failure = exc
                return
            finally:
                self._ready.set()
            clock = pygame.time.Clock()
            while not self._stop.is_set():
                self._pump()
                self._paint()
                clock.tick(self.fps)
        except Exception:
            log.exception("[pygame] display thread failed")
            raise
        finally:
            pygame.quit()
            self._events.put(None)

    def _open(self) -> None:
        pygame.init()
        pygame.display.set_caption(self.title)
        self._font = pygame.font.SysFont("monospace", self.font_size)
        self._cell = self._font.size("M")
        self._set_mode(self.columns, self.rows)

    def _set_mode(self, columns: int, rows: int) -> None:
        width, height = self._cell
        self._surface = pygame.display.set_mode((columns * width, rows * height), pygame.RESIZABLE)
        self._surface.fill(DEFAULT_BACKGROUND)
        with self._lock:
            self._buffer.resize(columns, rows)

    def _pump(self) -> None:
        if self._show_mouse:
            self._show_mouse = False
            pygame.mouse.set_visible(True)
        for event in pygame.event.get():
            for out in self.translate_event(event):
                self._events.put(out)

    def _paint(self) -> None:
        width, height = self._cell
        painted = False
        while True:
            try:
                cleared, cells = self._frames.get_nowait()
            except queue.Empty:
                break
            if cleared:
                self._surface.fill(DEFAULT_BACKGROUND)
            for (x, y), (ch, style) in cells.items():
                fore, back = style_colors(style)
                area = pygame.Rect(x * width, y * height, width, height)
                self._surface.fill(back, area)
                if ch != ' ':
                    self._surface.blit(self._font.render(ch, True, fore, back), area)
            painted = True
        if painted:
            pygame.display.flip()

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
            self._cleared = True

    def sync(self) -> None:
        """ Hand the cells changed since the last sync to the display thread """
        with self._lock:
            frame: Frame = (self._cleared, self._buffer.take_changes())
            self._cleared = False
        self._frames.put(frame)

    # Input

    def poll_event(self) -> Optional[InputEvent]:
        event = self._events.get()
        if event is None:
            # closed, every later call sees it too
            self._events.put(None)
        return event

    def _to_cell(self, pos: Tuple[int, int]) -> Tuple[int, int]:
        return (pos[0] // self._cell[0], pos[1] // self._cell[1])

    def translate_event(self, event: pygame.event.Event) -> List[InputEvent]:
        if event.type == pygame.QUIT:
            return [KeyEvent(Key.CTRL_C, 'c', Modifier.CTRL)]
        if event.type == pygame.KEYDOWN:
            key = self._translate_key(event)
            return [] if key is None else [key]
        if event.type == pygame.MOUSEMOTION:
            x, y = self._to_cell(event.pos)
            return [MouseEvent(x, y, self._buttons)]
        if event.type in (pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP):
            button = _PYGAME_BUTTONS.get(event.button)
            if button is None:
                # wheel
                return []
            if event.type == pygame.MOUSEBUTTONDOWN:
                self._buttons |= button
            else:
                self._buttons &= ~button
            x, y = self._to_cell(event.pos)
            return [MouseEvent(x, y, self._buttons)]
        if event.type == pygame.VIDEORESIZE:
            columns = max(event.w // self._cell[0], 1)
            rows = max(event.h // self._cell[1], 1)
            self._set_mode(columns, rows)
            return [ResizeEvent(columns, rows)]
        return []

    def _translate_key(self, event: pygame.event.Event) -> Optional[KeyEvent]:
        modifiers = modifiers_of(event.mod)
        if event.key == pygame.K_TAB:
            key = Key.BACKTAB if modifiers & Modifier.SHIFT else Key.TAB
            return KeyEvent(key, '', modifiers)
        if event.key in _PYGAME_KEYS:
            return KeyEvent(_PYGAME_KEYS[event.key], '', modifiers)
        if modifiers & Modifier.CTRL and pygame.K_a <= event.key <= pygame.K_z:
            return key_for_control(event.key - pygame.K_a + 1)
        if event.unicode and event.unicode.isprintable():
            return KeyEvent(Key.RUNE, event.unicode, modifiers)
        return None
