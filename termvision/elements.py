# elements.py

from __future__ import annotations
import logging
import sys
import weakref

from typing import Any, Callable, List, Optional, TYPE_CHECKING

from .bus import (BROADCAST, Activation, Message, MessageBus, Packet,
                  build_draw_message, build_zorder_message, new_address)
from .geometry import EMPTY, Rect, intersect
from .screen import Color, Style

if TYPE_CHECKING:
    from .canvas import AnyCanvas, Canvas

log = logging.getLogger(__name__)

# utility components (timers) sort after everything else
MAX_ZORDER = sys.maxsize

OnReceiveMessage = Callable[['UIComponent', Packet], Any]
OnEnabled = Callable[['UIComponent', bool], bool]
OnDraw = Callable[['UIView'], None]
OnChangeBounds = Callable[[Rect], None]
OnActivate = Callable[[bool], None]


# ############################################
#
# Z-order
#

def zorder_key(component: 'UIComponent') -> int:
    return component.zorder


def sort_by_zorder(components: List['UIComponent']) -> None:
    """ In place and stable: equal z-orders keep their insertion order """
    components.sort(key=zorder_key)


# ############################################
#
# Component Class
#

class UIComponent:
    __slots__ = ('name', 'address', 'bus', 'children', 'zorder', '_enabled',
                 '_parent', 'on_receive_message', 'on_enabled', '__weakref__')

    def __init__(self, name: str, bus: MessageBus) -> None:
        self.name               = name
        self.address            = new_address()
        self.bus                = bus
        # structures
        self._parent            : Optional[weakref.ReferenceType['UIComponent']] = None
        self.children           : List['UIComponent'] = []
        # states
        self.zorder             : int = 0
        self._enabled           = False
        # overrides
        self.on_receive_message : Optional[OnReceiveMessage] = None
        self.on_enabled         : Optional[OnEnabled] = None

    # Hierarchy

    @property
    def parent(self) -> Optional['UIComponent']:
        return self._parent() if self._parent is not None else None

    @parent.setter
    def parent(self, value: Optional['UIComponent']) -> None:
        self._parent = weakref.ref(value) if value is not None else None

    def add_child(self, child: 'UIComponent') -> None:
        if child is self or child.parent is self:
            return
        previous = child.parent
        if previous is not None:
            previous.remove_child(child)
        self.children.append(child)
        child.parent = self
        sort_by_zorder(self.children)
        log.debug("[%s] parenting %s", self.name, child.name)

    def remove_child(self, child: 'UIComponent') -> None:
        """ Detach child; its own children stay attached to it """
        for index, current in enumerate(self.children):
            if current.address == child.address:
                del self.children[index]
                current.parent = None
                return

    # Enable state

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, status: bool) -> None:
        if self.on_enabled is not None:
            self._enabled = bool(self.on_enabled(self, status))
        else:
            self._enabled = status

    # Z-order controls

    def notify_zorder_changed(self) -> None:
        """ Ask the parent to resort its children after a zorder change """
        parent = self.parent
        if parent is not None:
            self.bus.send(build_zorder_message(parent.address))

    def bring_to_front(self) -> None:
        siblings = self._siblings()
        if not siblings:
            return
        self.zorder = max(s.zorder for s in siblings) + 1
        self.notify_zorder_changed()

    def send_to_back(self) -> None:
        siblings = self._siblings()
        if not siblings:
            return
        self.zorder = min(s.zorder for s in siblings) - 1
        self.notify_zorder_changed()

    def _siblings(self) -> List['UIComponent']:
        parent = self.parent
        if parent is None:
            return []
        return [c for c in parent.children if c is not self and c.zorder < MAX_ZORDER]

    def reorder_children(self) -> None:
        sort_by_zorder(self.children)
        # Redraw me through the bus to refresh screen
        self.bus.send(build_draw_message(self.address))

    # Bus Messenger

    def post(self, recv: Any = BROADCAST, kind: int = Message.M_NULL,
             attachment: Any = None) -> None:
        self.bus.send(Packet(receiver=recv, kind=kind, data=attachment))

    def handle_message(self, packet: Packet) -> bool:
        """
        Route packet through this branch.

        Returns True when the packet was addressed to this component or one
        of its descendants, which stops the walk over the remaining siblings.
        Broadcasts always return False.
        """
        if packet.receiver == self.address:
            self._manage_my_message(packet)
            return True

        if packet.receiver == BROADCAST:
            self._manage_my_message(packet)
            for child in list(self.children):
                child.handle_message(packet)
            return False

        for child in list(self.children):
            if child.handle_message(packet):
                return True
        return False

    def _manage_my_message(self, packet: Packet) -> None:
        if self.on_receive_message is not None:
            self.on_receive_message(self, packet)
        else:
            self.process_message(packet)

    def process_message(self, packet: Packet) -> None:
        """ Built-in handling of structural messages """
        if packet.kind == Message.M_ZORDER_CHANGED:
            self.reorder_children()
        elif packet.kind == Message.M_DRAW:
            # a broadcast reaches the children on its own
            if packet.receiver == self.address:
                self.draw_children()
        elif packet.kind == Message.M_ENABLE:
            self.set_enabled(bool(packet.data))

    def draw_children(self) -> None:
        for child in list(self.children):
            child.handle_message(build_draw_message(child.address))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__},name={self.name},addr={self.address}>"


# ############################################
#
# View Class
#

class UIView(UIComponent):
    __slots__ = ('canvas', 'client_canvas', '_bounds', 'visible', 'focused',
                 'background_color', 'foreground_color', 'on_draw',
                 'on_change_bounds', 'on_activate')

    def __init__(self, name: str, bus: MessageBus, parent_canvas: 'AnyCanvas') -> None:
        super().__init__(name, bus)
        # geometry
        self._bounds            = EMPTY
        self.canvas             : 'Canvas' = parent_canvas.create_canvas_from(EMPTY)
        self.client_canvas      : 'Canvas' = self.canvas.create_canvas_from(self.get_client_bounds())
        # states
        self.visible            = True
        self.focused            = False
        self.background_color   = Color.DEFAULT
        self.foreground_color   = Color.DEFAULT
        # overrides
        self.on_draw            : Optional[OnDraw] = None
        self.on_change_bounds   : Optional[OnChangeBounds] = None
        self.on_activate        : Optional[OnActivate] = None

    # Geometry

    @property
    def bounds(self) -> Rect:
        return self._bounds

    @bounds.setter
    def bounds(self, r: Rect) -> None:
        self._bounds = r
        self.canvas.update_bounds(r)
        self.client_canvas.update_bounds(self.get_client_bounds())
        if self.on_change_bounds is not None:
            self.on_change_bounds(r)

    def get_client_bounds(self) -> Rect:
        return self._bounds.local()

    def get_absolute_rect(self) -> Rect:
        return calculate_absolute_position(self)

    def is_drawable(self) -> bool:
        return self.visible and not self.get_absolute_rect().is_empty()

    # Core routines

    def draw(self) -> None:
        if not self.visible:
            return
        self.canvas.set_brush(Style(self.foreground_color, self.background_color))
        self.canvas.fill(self._bounds.local())

    # Message handling

    def handle_message(self, packet: Packet) -> bool:
        if (packet.receiver == BROADCAST and packet.kind == Message.M_DRAW
                and not self.is_drawable()):
            # hidden or clipped out: skip the whole branch
            return False
        return super().handle_message(packet)

    def process_message(self, packet: Packet) -> None:
        if packet.kind == Message.M_DRAW:
            if not self.is_drawable():
                return
            if self.on_draw is not None:
                self.on_draw(self)
            else:
                self.draw()
            if packet.receiver == self.address:
                self.draw_children()
        elif packet.kind == Message.M_CHANGE_BOUNDS:
            self.bounds = packet.data
            # may uncover or overlap other views
            self.post(BROADCAST, Message.M_DRAW)
        elif packet.kind == Message.M_ACTIVATE:
            self.focused = packet.data == Activation.WA_ACTIVE
            if self.on_activate is not None:
                self.on_activate(self.focused)
            self.handle_message(build_draw_message(self.address))
        else:
            super().process_message(packet)


# ############################################
#
# Absolute position
#

def calculate_absolute_position(view: UIView) -> Rect:
    """
    Rectangle of view in screen coordinates, clipped by every ancestor.

    Returns the zero rectangle as soon as one level clips it out entirely.
    """
    rect = view.bounds
    parent = view.parent

    while isinstance(parent, UIView):
        bounds = parent.bounds
        client = parent.get_client_bounds()

        # same referential as the parent
        rect = rect.moved(bounds.x + client.x, bounds.y + client.y)

        parent_area = Rect(bounds.x + client.x,
                           bounds.y + client.y,
                           min(bounds.width, client.width),
                           min(bounds.height, client.height))

        rect = intersect(rect, parent_area)
        if rect.is_empty():
            return EMPTY

        parent = parent.parent

    return rect

