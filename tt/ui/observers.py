"""Widget observers: each one binds a Qt widget to the NotificationBus.

Observers re-render purely from the TrackingEvent they receive. Every
observer unregisters itself when its widget is destroyed, and owners that
tear rows down call ``close()`` first so nothing is left pointing at a
deleted widget.
"""

from PySide6.QtWidgets import QLabel, QPushButton, QWidget
from tt.core.bus import NotificationBus, ObserverKind
from tt.core.session import EventType, TrackingEvent
from tt.util.misc import format_money, format_time

RUNNING_BULLET = "●"


class WidgetObserver:
    kind = ObserverKind.SUBSCRIBER

    def __init__(self, bus: NotificationBus, widget: QWidget, scope_key: str | None = None):
        self.widget = widget
        self.scope_key = scope_key
        self.registration = bus.register(self.kind, self.update, scope_key)
        widget.destroyed.connect(lambda *_: self.registration.close())

    def close(self):
        self.registration.close()

    def update(self, event: TrackingEvent):
        raise NotImplementedError


# Start/Stop toggle. The click handler asks the authority what to do, the label only follows events.
class TrackButtonObserver(WidgetObserver):
    kind = ObserverKind.BUTTON

    def __init__(self, bus, button: QPushButton, authority, on_start, scope_key=None):
        super().__init__(bus, button, scope_key)
        self.authority = authority
        self.on_start = on_start
        button.clicked.connect(lambda _=False: self._on_clicked())
        self._render(self._is_active())

    def _is_active(self):
        if self.scope_key is None:
            return self.authority.is_tracking
        return self.authority.is_stack_tracking(self.scope_key)

    def _on_clicked(self):
        if self._is_active():
            self.authority.stop()
        else:
            self.on_start()

    def _render(self, active):
        self.widget.setText("Stop" if active else "Start")
        self.widget.setToolTip("Stop tracking" if active else "Start tracking")

    def update(self, event):
        self._render(event.event != EventType.STOP)


class TimeLabelObserver(WidgetObserver):
    """Elapsed time for one stack, or for whatever is running when unscoped.

    A scoped label shows the stack's stored total plus the live session and
    folds the final elapsed into that total when the session stops. The
    unscoped header label shows the live session only, or the pomodoro
    countdown when one is set.
    """
    kind = ObserverKind.TIME_LABEL

    def __init__(self, bus, label: QLabel, scope_key=None, base_seconds=0):
        super().__init__(bus, label, scope_key)
        self.base_seconds = base_seconds
        self._render(self.base_seconds, False)

    def _render(self, seconds, active):
        prefix = f"{RUNNING_BULLET} " if active else ""
        self.widget.setText(f"{prefix}{format_time(seconds)}")
        font = self.widget.font()
        font.setBold(active)
        self.widget.setFont(font)

    def update(self, event):
        if self.scope_key is None:
            if event.event == EventType.STOP:
                self._render(0, False)
            elif event.remaining_seconds is not None:
                self._render(event.remaining_seconds, True)
            else:
                self._render(event.elapsed_seconds, True)
            return

        if event.event == EventType.STOP:
            self.base_seconds += event.elapsed_seconds
            self._render(self.base_seconds, False)
        else:
            self._render(self.base_seconds + event.elapsed_seconds, True)


# Earnings at the client's hourly rate. Hidden when there is no rate.
class MoneyLabelObserver(WidgetObserver):
    kind = ObserverKind.MONEY_LABEL

    def __init__(self, bus, label: QLabel, scope_key=None, base_seconds=0, rate=0.0, currency="EUR"):
        super().__init__(bus, label, scope_key)
        self.base_seconds = base_seconds
        self.rate = rate
        self.currency = currency
        self._render(self.base_seconds, rate, currency)

    def _render(self, seconds, rate, currency):
        text = format_money(seconds, rate, currency)
        self.widget.setText(text)
        self.widget.setVisible(bool(text))

    def update(self, event):
        if self.scope_key is None:
            seconds = 0 if event.event == EventType.STOP else event.elapsed_seconds
            self._render(seconds, event.client_rate, event.currency)
            return

        self.rate, self.currency = event.client_rate, event.currency
        if event.event == EventType.STOP:
            self.base_seconds += event.elapsed_seconds
            self._render(self.base_seconds, self.rate, self.currency)
        else:
            self._render(self.base_seconds + event.elapsed_seconds, self.rate, self.currency)


# Running marker for a stack row: background, bold name and bullet.
class RowHighlightObserver(WidgetObserver):
    kind = ObserverKind.ROW_HIGHLIGHT

    def __init__(self, bus, widget_dict: dict, theme: dict, scope_key: str):
        super().__init__(bus, widget_dict["container"], scope_key)
        self.widget_dict = widget_dict
        self.theme = theme

    def set_running(self, running):
        t = self.theme
        bg = t["row_running_bg"] if running else t["row_bg"]
        fg = t["running_text"] if running else t["text"]
        self.widget.setStyleSheet(f"#rowBg {{ background-color: {bg}; border-bottom: 1px solid {t['separator']}; }}")

        name_lbl = self.widget_dict["name"]
        font = name_lbl.font()
        font.setBold(running)
        name_lbl.setFont(font)
        name_lbl.setStyleSheet(f"color: {fg};")
        self.widget_dict["bullet"].setText(RUNNING_BULLET if running else "")
        self.widget_dict["bullet"].setStyleSheet(f"color: {fg};")

    def update(self, event):
        if event.event != EventType.TICK:
            self.set_running(event.event == EventType.START)


class HeaderObserver(WidgetObserver):
    """Keeps the header's task field and caption in step with the running session."""
    kind = ObserverKind.HEADER

    def __init__(self, bus, widget_dict: dict):
        super().__init__(bus, widget_dict["container"])
        self.widget_dict = widget_dict

    def update(self, event):
        caption = self.widget_dict["caption"]
        if event.event == EventType.START:
            self.widget_dict["name_input"].setText(event.task_name)
            caption.setText(f"{event.project_name} · {event.client_name}")
        elif event.event == EventType.STOP:
            caption.setText(f"Last: {event.task_name} ({format_time(event.elapsed_seconds)})")
