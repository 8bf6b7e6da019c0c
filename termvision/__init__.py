from .bus import (APPLICATION, BROADCAST, Activation, Message, MessageBus,
                  Packet, build_activate_message, build_change_bounds_message,
                  build_click_mouse_message, build_deactivate_message,
                  build_draw_message, build_empty_message, build_enable_message,
                  build_key_message, build_mouse_enter_message,
                  build_mouse_leave_message, build_quit_message,
                  build_screen_resize_message, build_zorder_message, new_address)
from .canvas import Canvas, ScreenCanvas
from .core import (ApplicationConfig, ApplicationError, ApplicationStyle,
                   NoMainWindowError, ScreenInitError, UIApplication,
                   create_default_application_config)
from .elements import (MAX_ZORDER, UIComponent, UIView,
                       calculate_absolute_position, sort_by_zorder, zorder_key)
from .geometry import EMPTY, Rect, in_horizontal, in_vertical, intersect
from .screen import (Button, Color, CursesScreen, Key, KeyEvent, Modifier,
                     MouseEvent, ResizeEvent, Screen, Style)
from .widgets import (BorderType, UITimer, UIWindow, WindowBorder,
                      build_create_window_message, build_destroy_window_message)

__version__ = "0.1.0"
