# bus.py
from __future__ import annotations
from enum import IntEnum
from dataclasses import dataclass
from typing import Any, Optional, TYPE_CHECKING

import logging
import threading
import uuid
from collections import deque

from .geometry import Rect

if TYPE_CHECKING:
    from .screen import KeyEvent, MouseEvent

log = logging.getLogger(__name__)

# Globals

BROADCAST = uuid.UUID(int=(1 << 128) - 1)
APPLICATION = uuid.UUID(int=0)


def new_address() -> uuid.UUID:
    return uuid.uuid4()


class Message(IntEnum):
    # STRUCTURE
    M_NULL = 0
    M_ENABLE = 1
    M_KEY = 2
    M_SCREEN_RESIZE = 3
    M_DRAW = 4              # targeted: component and its branch only
    M_ZORDER_CHANGED = 5    # sent to the parent of the reordered child
    M_QUIT = 6
    M_CHANGE_BOUNDS = 7
    M_TIMER = 8             # sent to the timer parent when no callback is set

    # WINDOW LIST
    M_CREATE = 9
    M_DESTROY = 10

    # POINTER
    M_MOUSE_MOVE = 11       # raw pointer sample, handled by the application
    M_MOUSE_LEFT_DOWN = 12
    M_MOUSE_LEFT_UP = 13
    M_MOUSE_RIGHT_DOWN = 14
    M_MOUSE_RIGHT_UP = 15
    M_ACTIVATE = 16         # data is an Activation value
    M_MOUSE_ENTER = 17
    M_MOUSE_LEAVE = 18

    # user kinds start here
    M_USER = (1 << 63) - 1


class Activation(IntEnum):
    WA_INACTIVE = 0
    WA_ACTIVE = 1


@dataclass(frozen=True)
class Packet:
    receiver: uuid.UUID
    kind: int
    data: Any = None


def kind_name(kind: int) -> str:
    try:
        return Message(kind).name
    except ValueError:
        return f"M_USER+{kind - Message.M_USER}"


class MessageBus:
    """
    Bounded FIFO channel between the input poller, timers and the run loop.

    Senders block while the queue is full. The consuming thread is exempt:
    it posts follow-up packets while dispatching and would otherwise wait
    on itself.
    """
    __slots__ = (
        "_queue",
        "_maxsize",
        "_cond",
        "_consumer",
    )

    def __init__(self, maxsize: int = 10) -> None:
        self._maxsize   : int = maxsize
        self._queue     : deque[Packet] = deque()
        self._cond      : threading.Condition = threading.Condition()
        self._consumer  : Optional[int] = None

    def send(self, packet: Packet) -> None:
        with self._cond:
            if self._maxsize > 0 and threading.get_ident() != self._consumer:
                while len(self._queue) >= self._maxsize:
                    self._cond.wait()
            self._queue.append(packet)
            self._cond.notify_all()
        self._write_debug(packet)

    def receive(self, timeout: Optional[float] = None) -> Optional[Packet]:
        with self._cond:
            self._consumer = threading.get_ident()
            if not self._cond.wait_for(lambda: len(self._queue) > 0, timeout):
                return None
            packet = self._queue.popleft()
            self._cond.notify_all()
            return packet

    def _write_debug(self, packet: Packet) -> None:
        if packet.receiver == BROADCAST:
            log.debug("[BROADCAST] %s", kind_name(packet.kind))
        elif packet.receiver == APPLICATION:
            log.debug("[APPLICATION] %s", kind_name(packet.kind))
        else:
            log.debug("[MESSAGE] to: %s; %s", packet.receiver, kind_name(packet.kind))

    # QoL Functions

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def clear(self) -> None:
        """Clear all queued messages."""
        with self._cond:
            self._queue.clear()
            self._cond.notify_all()


# Packet builders

def build_empty_message() -> Packet:
    return Packet(BROADCAST, Message.M_NULL)


def build_key_message(event: 'KeyEvent') -> Packet:
    return Packet(BROADCAST, Message.M_KEY, event)


def build_screen_resize_message(width: int, height: int) -> Packet:
    return Packet(BROADCAST, Message.M_SCREEN_RESIZE, Rect(0, 0, width, height))


def build_draw_message(receiver: uuid.UUID) -> Packet:
    return Packet(receiver, Message.M_DRAW)


def build_zorder_message(receiver: uuid.UUID) -> Packet:
    return Packet(receiver, Message.M_ZORDER_CHANGED)


def build_change_bounds_message(receiver: uuid.UUID, bounds: Rect) -> Packet:
    return Packet(receiver, Message.M_CHANGE_BOUNDS, bounds)


def build_enable_message(receiver: uuid.UUID, status: bool) -> Packet:
    return Packet(receiver, Message.M_ENABLE, status)


def build_activate_message(receiver: uuid.UUID) -> Packet:
    return Packet(receiver, Message.M_ACTIVATE, Activation.WA_ACTIVE)


def build_deactivate_message(receiver: uuid.UUID) -> Packet:
    return Packet(receiver, Message.M_ACTIVATE, Activation.WA_INACTIVE)


def build_click_mouse_message(receiver: uuid.UUID, event: 'MouseEvent', kind: int) -> Packet:
    return Packet(receiver, kind, event)


def build_mouse_enter_message(receiver: uuid.UUID, x: int, y: int) -> Packet:
    return Packet(receiver, Message.M_MOUSE_ENTER, (x, y))


def build_mouse_leave_message(receiver: uuid.UUID) -> Packet:
    return Packet(receiver, Message.M_MOUSE_LEAVE)


def build_quit_message() -> Packet:
    return Packet(APPLICATION, Message.M_QUIT)
