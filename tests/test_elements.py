"""Tests for components, views, dispatch rules and absolute positions."""

from __future__ import annotations

from typing import List, Tuple

from termvision.bus import (BROADCAST, Activation, Message, MessageBus, Packet,
                            build_change_bounds_message, build_draw_message,
                            build_enable_message, build_zorder_message,
                            new_address)
from termvision.canvas import ScreenCanvas
from termvision.elements import (MAX_ZORDER, UIComponent, UIView,
                                 calculate_absolute_position, sort_by_zorder)
from termvision.geometry import EMPTY, Rect
from termvision.screen import Color

from .virtual_screen import VirtualScreen


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def recorder(log: List[Tuple[str, int]]):
    """on_receive_message that records (name, kind) and keeps default handling."""

    def handler(component: UIComponent, packet: Packet) -> None:
        log.append((component.name, packet.kind))
        component.process_message(packet)

    return handler


def make_tree(bus: MessageBus, log: List[Tuple[str, int]]):
    root = UIComponent("root", bus)
    a = UIComponent("a", bus)
    a1 = UIComponent("a1", bus)
    b = UIComponent("b", bus)
    root.add_child(a)
    root.add_child(b)
    a.add_child(a1)
    for c in (root, a, a1, b):
        c.on_receive_message = recorder(log)
    return root, a, a1, b


def make_views(screen: VirtualScreen, bus: MessageBus, *bounds: Rect) -> List[UIView]:
    """Chain of views, each one the child of the previous."""
    canvas = ScreenCanvas(screen)
    views: List[UIView] = []
    parent = None
    for n, r in enumerate(bounds):
        view = UIView(f"v{n}", bus, canvas if parent is None else parent.client_canvas)
        view.bounds = r
        if parent is not None:
            parent.add_child(view)
        views.append(view)
        parent = view
    return views


def drain(bus: MessageBus) -> List[Packet]:
    out = []
    while True:
        packet = bus.receive(timeout=0)
        if packet is None:
            return out
        out.append(packet)


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------


class TestHierarchy:
    def test_add_child_sets_parent(self) -> None:
        bus = MessageBus()
        parent, child = UIComponent("p", bus), UIComponent("c", bus)
        parent.add_child(child)
        assert child.parent is parent
        assert parent.children == [child]

    def test_add_child_reparents(self) -> None:
        bus = MessageBus()
        first, second, child = UIComponent("1", bus), UIComponent("2", bus), UIComponent("c", bus)
        first.add_child(child)
        second.add_child(child)
        assert first.children == []
        assert second.children == [child]
        assert child.parent is second

    def test_remove_child_keeps_order_and_grandchildren(self) -> None:
        bus = MessageBus()
        parent = UIComponent("p", bus)
        kids = [UIComponent(str(n), bus) for n in range(4)]
        for k in kids:
            parent.add_child(k)
        grandchild = UIComponent("g", bus)
        kids[1].add_child(grandchild)

        parent.remove_child(kids[1])

        assert parent.children == [kids[0], kids[2], kids[3]]
        assert kids[1].parent is None
        assert kids[1].children == [grandchild]
        assert grandchild.parent is kids[1]

    def test_remove_unknown_child_is_noop(self) -> None:
        bus = MessageBus()
        parent, stranger = UIComponent("p", bus), UIComponent("s", bus)
        parent.add_child(UIComponent("c", bus))
        parent.remove_child(stranger)
        assert len(parent.children) == 1

    def test_parent_link_is_not_owning(self) -> None:
        bus = MessageBus()
        child = UIComponent("c", bus)
        parent = UIComponent("p", bus)
        parent.add_child(child)
        del parent
        assert child.parent is None


# ---------------------------------------------------------------------------
# Z-order
# ---------------------------------------------------------------------------


class TestZOrder:
    def test_children_sorted_and_stable(self) -> None:
        bus = MessageBus()
        parent = UIComponent("p", bus)
        kids = []
        for n, z in enumerate([1, 0, 1, 0, MAX_ZORDER, -1]):
            k = UIComponent(str(n), bus)
            k.zorder = z
            kids.append(k)
            parent.add_child(k)
        assert [c.name for c in parent.children] == ["5", "1", "3", "0", "2", "4"]

    def test_sort_by_zorder_in_place(self) -> None:
        bus = MessageBus()
        items = [UIComponent(str(n), bus) for n in range(3)]
        items[0].zorder = 5
        sort_by_zorder(items)
        assert [c.name for c in items] == ["1", "2", "0"]

    def test_mutating_zorder_does_not_resort(self) -> None:
        bus = MessageBus()
        parent = UIComponent("p", bus)
        a, b = UIComponent("a", bus), UIComponent("b", bus)
        parent.add_child(a)
        parent.add_child(b)
        a.zorder = 10
        assert parent.children == [a, b]

    def test_zorder_changed_message_resorts_and_redraws(self) -> None:
        bus = MessageBus()
        parent = UIComponent("p", bus)
        a, b = UIComponent("a", bus), UIComponent("b", bus)
        parent.add_child(a)
        parent.add_child(b)

        a.bring_to_front()
        posted = drain(bus)
        assert posted == [build_zorder_message(parent.address)]

        parent.handle_message(posted[0])
        assert parent.children == [b, a]
        assert drain(bus) == [build_draw_message(parent.address)]

    def test_send_to_back_ignores_timers(self) -> None:
        bus = MessageBus()
        parent = UIComponent("p", bus)
        a, b, timer = UIComponent("a", bus), UIComponent("b", bus), UIComponent("t", bus)
        timer.zorder = MAX_ZORDER
        for c in (a, b, timer):
            parent.add_child(c)
        b.send_to_back()
        assert b.zorder == -1
        a.bring_to_front()
        assert b.zorder < a.zorder < MAX_ZORDER


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_targeted_reaches_only_receiver(self) -> None:
        bus, log = MessageBus(), []
        root, a, a1, b = make_tree(bus, log)
        claimed = root.handle_message(Packet(a1.address, Message.M_USER))
        assert claimed is True
        assert log == [("a1", Message.M_USER)]

    def test_targeted_stops_at_first_claiming_child(self) -> None:
        bus, log = MessageBus(), []
        root, a, a1, b = make_tree(bus, log)
        b_hits = []
        b.on_receive_message = lambda c, p: b_hits.append(p)
        root.handle_message(Packet(a.address, Message.M_USER))
        assert b_hits == []

    def test_unknown_receiver_is_not_claimed(self) -> None:
        bus, log = MessageBus(), []
        root, *_ = make_tree(bus, log)
        assert root.handle_message(Packet(new_address(), Message.M_USER)) is False
        assert log == []

    def test_broadcast_reaches_every_node_once(self) -> None:
        bus, log = MessageBus(), []
        root, *_ = make_tree(bus, log)
        claimed = root.handle_message(Packet(BROADCAST, Message.M_USER))
        assert claimed is False
        assert sorted(name for name, _ in log) == ["a", "a1", "b", "root"]

    def test_broadcast_order_is_parent_first(self) -> None:
        bus, log = MessageBus(), []
        root, *_ = make_tree(bus, log)
        root.handle_message(Packet(BROADCAST, Message.M_USER))
        assert [name for name, _ in log] == ["root", "a", "a1", "b"]

    def test_post_sends_on_bus(self) -> None:
        bus = MessageBus()
        c = UIComponent("c", bus)
        c.post(c.address, Message.M_USER, "hello")
        assert drain(bus) == [Packet(c.address, Message.M_USER, "hello")]


class TestEnable:
    def test_disabled_by_default(self) -> None:
        assert UIComponent("c", MessageBus()).enabled is False

    def test_set_enabled(self) -> None:
        c = UIComponent("c", MessageBus())
        c.set_enabled(True)
        assert c.enabled is True

    def test_veto(self) -> None:
        c = UIComponent("c", MessageBus())
        asked = []

        def veto(component: UIComponent, status: bool) -> bool:
            asked.append(status)
            return False

        c.on_enabled = veto
        c.set_enabled(True)
        assert asked == [True]
        assert c.enabled is False

    def test_enable_message(self) -> None:
        c = UIComponent("c", MessageBus())
        c.handle_message(build_enable_message(c.address, True))
        assert c.enabled is True


# ---------------------------------------------------------------------------
# Absolute position
# ---------------------------------------------------------------------------


class TestAbsolutePosition:
    def test_basic_composition(self) -> None:
        root, child, grandchild = make_views(VirtualScreen(), MessageBus(),
                                             Rect(0, 0, 50, 30), Rect(2, 2, 40, 20), Rect(2, 2, 5, 5))
        assert calculate_absolute_position(grandchild) == Rect(4, 4, 5, 5)
        assert grandchild.parent is child
        assert child.parent is root

    def test_every_level_is_walked(self) -> None:
        root, child, grandchild = make_views(VirtualScreen(), MessageBus(),
                                             Rect(0, 0, 50, 30), Rect(2, 2, 40, 20), Rect(2, 2, 5, 5))
        root.bounds = Rect(3, 1, 50, 30)
        assert calculate_absolute_position(grandchild) == Rect(7, 5, 5, 5)
        assert calculate_absolute_position(child) == Rect(5, 3, 40, 20)

    def test_nested_offsets_accumulate(self) -> None:
        root, child, grandchild = make_views(VirtualScreen(), MessageBus(),
                                             Rect(2, 3, 50, 30), Rect(2, 3, 40, 20), Rect(2, 3, 30, 10))
        assert grandchild.get_absolute_rect() == Rect(6, 9, 30, 10)

    def test_full_clip_out(self) -> None:
        root, child, grandchild = make_views(VirtualScreen(), MessageBus(),
                                             Rect(0, 0, 50, 30), Rect(2, 2, 40, 20), Rect(-30, -30, 5, 5))
        assert calculate_absolute_position(grandchild) == EMPTY

    def test_partial_clip(self) -> None:
        root, child = make_views(VirtualScreen(), MessageBus(), Rect(0, 0, 10, 10), Rect(7, 8, 5, 5))
        assert child.get_absolute_rect() == Rect(7, 8, 3, 2)

    def test_ancestor_clipped_out_empties_descendants(self) -> None:
        root, child, grandchild = make_views(VirtualScreen(), MessageBus(),
                                             Rect(0, 0, 10, 10), Rect(20, 20, 5, 5), Rect(0, 0, 2, 2))
        assert child.get_absolute_rect() == EMPTY
        assert grandchild.get_absolute_rect() == EMPTY

    def test_root_view_is_its_bounds(self) -> None:
        (view,) = make_views(VirtualScreen(), MessageBus(), Rect(3, 4, 5, 6))
        assert view.get_absolute_rect() == Rect(3, 4, 5, 6)


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


class TestViewDraw:
    def setup_views(self):
        screen, bus = VirtualScreen(20, 10), MessageBus()
        parent, child = make_views(screen, bus, Rect(1, 1, 10, 5), Rect(2, 1, 3, 2))
        parent.background_color = Color.BLUE
        child.background_color = Color.RED
        return screen, bus, parent, child

    def test_targeted_draw_paints_branch(self) -> None:
        screen, bus, parent, child = self.setup_views()
        parent.handle_message(build_draw_message(parent.address))
        assert screen.style_at(1, 1).bg == Color.BLUE
        assert screen.style_at(10, 5).bg == Color.BLUE
        assert (11, 1) not in screen.cells
        # child at parent (1, 1) + (2, 1)
        assert screen.style_at(3, 2).bg == Color.RED
        assert screen.style_at(5, 3).bg == Color.RED
        assert screen.style_at(6, 3).bg == Color.BLUE

    def test_broadcast_draw_paints_branch(self) -> None:
        screen, bus, parent, child = self.setup_views()
        parent.handle_message(build_draw_message(BROADCAST))
        assert screen.style_at(1, 1).bg == Color.BLUE
        assert screen.style_at(3, 2).bg == Color.RED

    def test_children_drawn_exactly_once(self) -> None:
        screen, bus, parent, child = self.setup_views()
        calls = []
        child.on_draw = lambda v: calls.append(v.name)
        parent.handle_message(build_draw_message(parent.address))
        assert calls == ["v1"]
        parent.handle_message(build_draw_message(BROADCAST))
        assert calls == ["v1", "v1"]

    def test_on_draw_replaces_own_draw(self) -> None:
        screen, bus, parent, child = self.setup_views()
        parent.on_draw = lambda v: v.canvas.print_char(0, 0, "X")
        parent.handle_message(build_draw_message(parent.address))
        assert screen.char_at(1, 1) == "X"
        assert (2, 1) not in screen.cells
        # children still painted
        assert screen.style_at(3, 2).bg == Color.RED

    def test_invisible_view_skips_branch(self) -> None:
        screen, bus, parent, child = self.setup_views()
        calls = []
        child.on_draw = lambda v: calls.append(v.name)
        parent.visible = False
        parent.handle_message(build_draw_message(parent.address))
        parent.handle_message(build_draw_message(BROADCAST))
        assert calls == []
        assert screen.cells == {}

    def test_clipped_out_view_is_not_drawn(self) -> None:
        screen, bus, parent, child = self.setup_views()
        child.bounds = Rect(30, 30, 2, 2)
        calls = []
        child.on_draw = lambda v: calls.append(v.name)
        parent.handle_message(build_draw_message(BROADCAST))
        child.handle_message(build_draw_message(child.address))
        assert calls == []

    def test_drawing_is_clipped_by_parent(self) -> None:
        screen, bus, parent, child = self.setup_views()
        child.bounds = Rect(8, 3, 5, 5)
        parent.handle_message(build_draw_message(parent.address))
        # parent client spans x 1..10, y 1..5
        assert screen.style_at(10, 5).bg == Color.RED
        assert (11, 5) not in screen.cells
        assert (10, 6) not in screen.cells


class TestViewMessages:
    def test_change_bounds(self) -> None:
        bus = MessageBus()
        (view,) = make_views(VirtualScreen(), bus, Rect(0, 0, 5, 5))
        seen = []
        view.on_change_bounds = seen.append
        view.handle_message(build_change_bounds_message(view.address, Rect(1, 2, 3, 4)))
        assert view.bounds == Rect(1, 2, 3, 4)
        assert seen == [Rect(1, 2, 3, 4)]
        assert drain(bus) == [build_draw_message(BROADCAST)]

    def test_bounds_update_canvases(self) -> None:
        (view,) = make_views(VirtualScreen(), MessageBus(), Rect(0, 0, 5, 5))
        view.bounds = Rect(4, 5, 6, 7)
        assert view.canvas.offset == Rect(4, 5, 6, 7)
        assert view.canvas.draw == Rect(0, 0, 6, 7)
        assert view.client_canvas.draw == Rect(0, 0, 6, 7)

    def test_activate_and_deactivate(self) -> None:
        (view,) = make_views(VirtualScreen(), MessageBus(), Rect(0, 0, 5, 5))
        activations, draws = [], []
        view.on_activate = activations.append
        view.on_draw = lambda v: draws.append(v.focused)

        view.handle_message(Packet(view.address, Message.M_ACTIVATE, Activation.WA_ACTIVE))
        assert view.focused is True
        view.handle_message(Packet(view.address, Message.M_ACTIVATE, Activation.WA_INACTIVE))
        assert view.focused is False

        assert activations == [True, False]
        assert draws == [True, False]

    def test_visible_by_default(self) -> None:
        (view,) = make_views(VirtualScreen(), MessageBus(), Rect(0, 0, 5, 5))
        assert view.visible is True
        assert view.focused is False
        assert view.enabled is False
