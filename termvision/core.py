from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .bus import (APPLICATION, BROADCAST, Message, MessageBus, Packet,
                  build_activate_message, build_click_mouse_message,
                  build_deactivate_message, build_draw_message,
                  build_key_message, build_mouse_enter_message,
                  build_mouse_leave_message, build_quit_message,
                  build_screen_resize_message)
from .canvas import ScreenCanvas
from .elements import UIView
from .geometry import Rect
from .screen import (Button, Color, CursesScreen, Key, KeyEvent, MouseEvent,
                     ResizeEvent, Screen, Style)

log = logging.getLogger(__name__)


# ############################################
#
# Errors
#

class ApplicationError(Exception):
    pass


class NoMainWindowError(ApplicationError):
    pass


class ScreenInitError(ApplicationError):
    pass


# ############################################
#
# Configuration
#

@dataclass
class ApplicationStyle:
    foreground_color: Color = Color.WHITE
    background_color: Color = Color.BLACK

    def brush(self) -> Style:
        return Style(self.foreground_color, self.background_color)


@dataclass
class ApplicationConfig:
    screen: Screen
    bus: MessageBus = field(default_factory=MessageBus)
    style: ApplicationStyle = field(default_factory=ApplicationStyle)
    exit_on_ctrl_c: bool = True
    quit_key: int = Key.CTRL_C
    show_mouse_cursor: bool = False


def create_default_application_config(backend: str = "curses", **kwargs) -> ApplicationConfig:
    """
    Config for almost every case: a fresh bus and the requested back-end.

    backend is "curses" (the controlling terminal) or "pygame" (a window
    rendering the cell grid). Extra keyword arguments go to ApplicationConfig.
    """
    if backend == "curses":
        screen = CursesScreen()
    elif backend == "pygame":
        from .pgscreen import PygameScreen
        screen = PygameScreen()
    else:
        raise ValueError(f"unknown screen back-end: {backend!r}")
    return ApplicationConfig(screen=screen, **kwargs)


# ############################################
#
# Input poller
#

def poll_events(screen: Screen, bus: MessageBus) -> None:
    """ Push decoded input on the bus until the screen shuts down """
    while True:
        event = screen.poll_event()
        if event is None:
            log.debug("[poller] screen closed")
            return
        if isinstance(event, MouseEvent):
            bus.send(Packet(APPLICATION, Message.M_MOUSE_MOVE, event))
        elif isinstance(event, KeyEvent):
            bus.send(build_key_message(event))
        elif isinstance(event, ResizeEvent):
            bus.send(build_screen_resize_message(event.width, event.height))
            bus.send(build_draw_message(APPLICATION))


# ############################################
#
# Application
#

class UIApplication:
    """
    Window stack and run loop.

    windows[0] is the focused window. All dispatch and drawing happen on the
    thread calling run(); other threads only talk to it through the bus.
    """
    __slots__ = ('bus', 'screen', 'canvas', 'windows', 'main_window',
                 'exit_on_ctrl_c', 'quit_key', 'show_mouse_cursor', 'running',
                 '_initialized', '_last_window_under_mouse', '_previous_buttons',
                 '_cursor', '_poller')

    def __init__(self, config: ApplicationConfig) -> None:
        self.bus                = config.bus
        self.screen             = config.screen
        self.canvas             = ScreenCanvas(config.screen, config.style.brush())
        self.windows            : List[UIView] = []
        self.main_window        : Optional[UIView] = None
        self.exit_on_ctrl_c     = config.exit_on_ctrl_c
        self.quit_key           = config.quit_key
        self.show_mouse_cursor  = config.show_mouse_cursor
        self.running            = False
        self._initialized       = False
        # pointer bookkeeping
        self._last_window_under_mouse : Optional[UIView] = None
        self._previous_buttons  = Button.NONE
        self._cursor            : Optional[Tuple[int, int, str, Style]] = None
        self._poller            : Optional[threading.Thread] = None

    # Window list

    def add_window(self, w: UIView) -> None:
        """ Push w in front; the first window added becomes the main window """
        self.windows.insert(0, w)
        if self.main_window is None:
            self.main_window = w

    def windows_list(self) -> List[UIView]:
        return list(self.windows)

    def find_window_by_coordinate(self, x: int, y: int) -> Optional[UIView]:
        for window in self.windows:
            if window.visible and window.bounds.contains(x, y):
                return window
        return None

    # Lifecycle

    def init(self) -> None:
        if self.main_window is None:
            raise NoMainWindowError("main window is not set")
        try:
            self.screen.init()
        except Exception as exc:
            raise ScreenInitError(f"cannot initialize screen: {exc}") from exc
        self.screen.enable_mouse()
        width, height = self.screen.size()
        self.canvas.update_bounds(Rect(0, 0, width, height))
        self._initialized = True

    def run(self) -> None:
        if not self._initialized:
            raise ApplicationError("init() must succeed before run()")
        self.running = True
        try:
            self.screen.clear()
            if self.windows:
                self.windows[0].focused = True

            # First time draw to create screen
            self.dispatch(build_draw_message(APPLICATION))
            self.flush()

            self._poller = threading.Thread(target=poll_events, args=(self.screen, self.bus),
                                            name="termvision-poller", daemon=True)
            self._poller.start()

            while self.running:
                packet = self.bus.receive()
                if not self.dispatch(packet):
                    self.running = False
                self.flush()
        except KeyboardInterrupt:
            log.info("[app] Interrupted...")
        except Exception:
            log.exception("[app] fatal exception in run loop")
            raise
        finally:
            self.running = False
            self._initialized = False
            self.screen.shutdown()
            log.info("[app] quit")

    def quit(self) -> None:
        self.bus.send(build_quit_message())

    def flush(self) -> None:
        """ Sync the screen once, only when something was drawn """
        if self.canvas.dirty:
            self._refresh_mouse_cursor()
            self.screen.sync()
            self.canvas.dirty = False

    # Dispatch

    def dispatch(self, packet: Packet) -> bool:
        """ Handle one packet; False means the run loop must stop """
        if packet.kind == Message.M_KEY:
            if self.exit_on_ctrl_c and packet.data.key == self.quit_key:
                log.info("[app] quit key pressed")
                return False
            self._call_focused_window(packet)
            return True

        if packet.receiver == APPLICATION:
            return self._manage_my_message(packet)

        if packet.kind == Message.M_SCREEN_RESIZE:
            self.canvas.update_bounds(packet.data)

        self._call_window_handle_message(packet)
        return True

    def _manage_my_message(self, packet: Packet) -> bool:
        kind = packet.kind
        if kind == Message.M_MOUSE_MOVE:
            self._manage_mouse_message(packet.data)
        elif kind == Message.M_DRAW:
            self.redraw()
        elif kind == Message.M_QUIT:
            return False
        elif kind == Message.M_CREATE:
            self._create_window(packet.data)
        elif kind == Message.M_DESTROY:
            return self._destroy_window(packet.data)
        return True

    def redraw(self) -> None:
        """ Paint the desktop, then every window from back to front """
        width, height = self.screen.size()
        self.canvas.fill(Rect(0, 0, width, height))
        packet = build_draw_message(BROADCAST)
        for window in reversed(self.windows):
            window.handle_message(packet)

    def _call_focused_window(self, packet: Packet) -> None:
        if self.windows:
            self.windows[0].handle_message(packet)

    def _call_window_handle_message(self, packet: Packet) -> None:
        if packet.receiver == BROADCAST:
            if packet.kind == Message.M_DRAW:
                self.redraw()
                return
            for window in reversed(self.windows):
                window.handle_message(packet)
            return

        for window in list(self.windows):
            if window.handle_message(packet):
                return
        log.debug("[app] nobody claimed packet for %s", packet.receiver)

    def _create_window(self, w: UIView) -> None:
        previous = self.windows[0] if self.windows else None
        self.add_window(w)
        log.debug("[app] window %s created", w.name)
        if previous is not None:
            self.bus.send(build_deactivate_message(previous.address))
        self.bus.send(build_activate_message(w.address))

    def _destroy_window(self, w: UIView) -> bool:
        for index, window in enumerate(self.windows):
            if window.address != w.address:
                continue
            del self.windows[index]
            log.debug("[app] window %s destroyed", window.name)
            if self._last_window_under_mouse is window:
                self._last_window_under_mouse = None
            if self.main_window is not None and window.address == self.main_window.address:
                log.info("[app] main window destroyed")
                return False
            if index == 0 and self.windows:
                self.bus.send(build_activate_message(self.windows[0].address))
            self.bus.send(build_draw_message(APPLICATION))
            return True
        return True

    # Pointer

    def _manage_mouse_message(self, ev: MouseEvent) -> None:
        check_mouse_move = True

        for button, down, up in ((Button.LEFT, Message.M_MOUSE_LEFT_DOWN, Message.M_MOUSE_LEFT_UP),
                                 (Button.RIGHT, Message.M_MOUSE_RIGHT_DOWN, Message.M_MOUSE_RIGHT_UP)):
            pressed = bool(ev.buttons & button)
            was_pressed = bool(self._previous_buttons & button)
            if pressed and not was_pressed:
                self._manage_mouse_click_down(ev, down)
                check_mouse_move = False
            elif was_pressed and not pressed:
                self._manage_mouse_click_up(ev, up)
                check_mouse_move = False

        if check_mouse_move:
            self._manage_mouse_move(ev.x, ev.y)

        self._display_mouse_cursor(ev.x, ev.y)
        self._previous_buttons = ev.buttons

    def _manage_mouse_click_down(self, ev: MouseEvent, kind: int) -> None:
        window = self.find_window_by_coordinate(ev.x, ev.y)
        if window is None:
            return

        focused = self.windows[0]
        if window is focused:
            self.bus.send(build_click_mouse_message(window.address, ev, kind))
            return

        # focus change
        self.windows.remove(window)
        self.windows.insert(0, window)
        self.bus.send(build_deactivate_message(focused.address))
        self.bus.send(build_activate_message(window.address))

    def _manage_mouse_click_up(self, ev: MouseEvent, kind: int) -> None:
        window = self.find_window_by_coordinate(ev.x, ev.y)
        if window is None:
            return
        self.bus.send(build_click_mouse_message(window.address, ev, kind))

    def _manage_mouse_move(self, x: int, y: int) -> None:
        window = self.find_window_by_coordinate(x, y)
        last = self._last_window_under_mouse

        if window is None:
            if last is not None:
                self.bus.send(build_mouse_leave_message(last.address))
                self._last_window_under_mouse = None
            return

        if last is None:
            self.bus.send(build_mouse_enter_message(window.address, x, y))
        elif last is not window:
            self.bus.send(build_mouse_leave_message(last.address))
            self.bus.send(build_mouse_enter_message(window.address, x, y))

        self._last_window_under_mouse = window

    # Text mouse cursor

    def _store_cursor_info(self, x: int, y: int) -> None:
        ch, style = self.screen.get_cell(x, y)
        self._cursor = (x, y, ch, style)

    def _draw_cursor(self) -> None:
        x, y, ch, style = self._cursor
        self.canvas.print_char_with_brush(x, y, ch, style.reversed())

    def _refresh_mouse_cursor(self) -> None:
        """ Pick up whatever was painted under the cursor since it was drawn """
        if not self.show_mouse_cursor or self._cursor is None:
            return
        x, y, ch, style = self._cursor
        if self.screen.get_cell(x, y) != (ch, style.reversed()):
            self._store_cursor_info(x, y)
            self._draw_cursor()

    def _display_mouse_cursor(self, x: int, y: int) -> None:
        if not self.show_mouse_cursor:
            return
        if self._cursor is not None:
            if (self._cursor[0], self._cursor[1]) == (x, y):
                return
            # restore last position
            old_x, old_y, ch, style = self._cursor
            self.canvas.print_char_with_brush(old_x, old_y, ch, style)
        self._store_cursor_info(x, y)
        self._draw_cursor()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__},windows={len(self.windows)},running={self.running}>"
