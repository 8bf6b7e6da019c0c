import logging
import sys
import time

from termvision import (Color, Message, Rect, UIApplication, UITimer, UIView,
                        UIWindow, build_draw_message,
                        create_default_application_config)


# ─── Bootstrapper ───────────────────────────────────────────────────────────

if __name__ == "__main__":

    # the terminal owns stdout
    logging.basicConfig(filename="termvision.log", level=logging.DEBUG,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    backend = sys.argv[1] if len(sys.argv) > 1 else "curses"
    config = create_default_application_config(backend, show_mouse_cursor=True)
    app = UIApplication(config)

    win1 = UIWindow("Main window", app.bus, app.canvas)
    win1.bounds = Rect(2, 1, 40, 14)
    app.add_window(win1)

    panel = UIView("panel", app.bus, win1.client_canvas)
    panel.bounds = Rect(2, 2, 20, 5)
    panel.background_color = Color.BLUE
    win1.add_child(panel)

    win2 = UIWindow("Clock", app.bus, app.canvas)
    win2.bounds = Rect(30, 8, 30, 6)
    app.add_window(win2)

    win3 = UIWindow("Tiny", app.bus, app.canvas)
    win3.bounds = Rect(50, 2, 9, 4)
    app.add_window(win3)

    # clock
    def show_time(view: UIView) -> None:
        view.draw()
        view.client_canvas.print_text(1, 1, time.strftime("%H:%M:%S"))

    win2.on_draw = show_time

    def tick(component, packet) -> None:
        if packet.kind == Message.M_TIMER:
            component.handle_message(build_draw_message(component.address))
        else:
            component.process_message(packet)

    win2.on_receive_message = tick

    timer = UITimer("clock", app.bus, 1.0)
    win2.add_child(timer)
    timer.set_enabled(True)

    app.init()
    app.run()
