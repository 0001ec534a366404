import sys
from PySide6.QtCore import Qt, QTimer
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)
from tt.common.logger import log
from tt.core import config
from tt.core.authority import TrackingAuthority
from tt.core.bus import NotificationBus, ObserverKind
from tt.core.database import TaskDatabase
from tt.core.errors import PersistenceStartFailed, TrackingError, ValidationError
from tt.core.identity import base_name, compute_group_key
from tt.core.persistence import PersistenceCoordinator
from tt.core.session import EventType
from tt.ui.compact import CompactTrackerWindow
from tt.ui.observers import (
    HeaderObserver,
    MoneyLabelObserver,
    RowHighlightObserver,
    TimeLabelObserver,
    TrackButtonObserver,
)
from tt.ui.row_factory import RowFactory
from tt.ui.theme import THEMES, build_stylesheet, resolve_theme
from tt.ui.tick import QtTickTimer
from tt.util.misc import format_duration

# How many recent task rows feed the stack list.
_RECENT_LIMIT = 300


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window of the task timer. The header starts and stops tasks, the list below shows one row per task stack.
class MainWindow(QMainWindow):

    def __init__(self):
        super().__init__()
        self.setWindowTitle("Task Timer")

        # -- Settings --
        self.settings = config.load_settings()
        s = self.settings
        self.theme_name = s["theme"] if s["theme"] in THEMES else "Light"
        self.theme = resolve_theme(self.theme_name)
        if s["always_on_top"]:
            self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        # -- Tracking core --
        self.db = TaskDatabase(config.database_path(s))
        self.persistence = PersistenceCoordinator(self.db)
        self.bus = NotificationBus()
        self.authority = TrackingAuthority(
            self.persistence,
            self.bus,
            timer_factory=lambda: QtTickTimer(self),
            tick_interval_ms=s["tick_interval_ms"],
            checkpoint_every_ticks=s["checkpoint_every_ticks"],
            default_task_name=s["default_task_name"],
        )
        self._remove_error_listener = self.authority.add_error_listener(self._on_tracking_error)

        self._stack_observers = []   # observers bound to the current stack rows
        self._stack_keys = set()     # group keys that have a row
        self._rebuild_pending = False
        self._stack_subscription = self.bus.register(ObserverKind.SUBSCRIBER, self._on_tracking_event)

        # -- Build UI skeleton --
        central = QWidget()
        self.setCentralWidget(central)
        self._main_lay = QVBoxLayout(central)
        self._main_lay.setContentsMargins(10, 10, 10, 10)

        self._build_header()

        self._stack_widget = QWidget()
        self._stack_lay = QVBoxLayout(self._stack_widget)
        self._stack_lay.setContentsMargins(0, 0, 0, 0)
        self._stack_lay.setSpacing(0)
        self._stack_lay.addStretch(1)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self._stack_widget)
        self._main_lay.addWidget(scroll, 1)

        self._build_footer()

        self._compact = None
        if s["show_compact_tracker"]:
            self._toggle_compact(True)

        self._apply_style()
        self._rebuild_stacks()
        self.resize(560, 480)
        QTimer.singleShot(0, self._check_stale_sessions)

    # ------------------------------------------------------------------ #
    #  Building                                                            #
    # ------------------------------------------------------------------ #

    def _apply_style(self):
        style = build_stylesheet(self.theme_name)
        self.setStyleSheet(style)
        app = QApplication.instance()
        if app is not None:
            app.setStyleSheet(style)

    def _build_header(self):
        container, w = RowFactory.header(self.theme, self.db.projects(), self.db.clients(),
                                         self.settings["pomodoro_minutes"])
        self._header = w
        self._select_data(w["project"], self.settings["default_project_id"])
        self._select_data(w["client"], self.settings["default_client_id"])
        w["name_input"].returnPressed.connect(self._start_from_header)
        w["name_input"].textEdited.connect(lambda _text: self._clear_invalid())

        self._header_observers = [
            HeaderObserver(self.bus, w),
            TrackButtonObserver(self.bus, w["button"], self.authority, self._start_from_header),
            TimeLabelObserver(self.bus, w["time"]),
            MoneyLabelObserver(self.bus, w["money"]),
        ]
        self._main_lay.addWidget(container)

    def _build_footer(self):
        footer = QHBoxLayout()
        footer.addStretch(1)
        self._compact_btn = QPushButton("Compact view")
        self._compact_btn.setCheckable(True)
        self._compact_btn.setChecked(self.settings["show_compact_tracker"])
        self._compact_btn.toggled.connect(self._toggle_compact)
        footer.addWidget(self._compact_btn)
        self._main_lay.addLayout(footer)

    @staticmethod
    def _select_data(combo, value):
        index = combo.findData(value)
        if index >= 0:
            combo.setCurrentIndex(index)

    # Groups recent task rows into stacks, newest stack first.
    def _collect_stacks(self):
        stacks = {}
        for row in self.db.recent_tasks(_RECENT_LIMIT):
            key = compute_group_key(row["name"], row["project_name"], row["client_name"])
            stack = stacks.get(key)
            if stack is None:
                stack = stacks[key] = {
                    "group_key": key,
                    "base_name": base_name(row["name"]),
                    "project_id": row["project_id"],
                    "project_name": row["project_name"],
                    "client_id": row["client_id"],
                    "client_name": row["client_name"],
                    "rate": float(row["rate"] or 0.0),
                    "currency": row["currency"],
                    "sessions": 0,
                }
            stack["sessions"] += 1
        for stack in stacks.values():
            stack["total"] = self.persistence.stack_total_seconds(
                stack["base_name"], stack["project_id"], stack["client_id"])
        return list(stacks.values())

    def _clear_stacks(self):
        for observer in self._stack_observers:
            observer.close()
        self._stack_observers.clear()
        self._stack_keys.clear()
        while self._stack_lay.count() > 1:
            item = self._stack_lay.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()

    def _rebuild_stacks(self):
        self._rebuild_pending = False
        self._clear_stacks()
        current = self.authority.get_current_state()

        for stack in self._collect_stacks():
            container, w = RowFactory.stack(self.theme, stack)
            key = stack["group_key"]
            highlight = RowHighlightObserver(self.bus, w, self.theme, key)
            observers = [
                highlight,
                TrackButtonObserver(self.bus, w["button"], self.authority,
                                    lambda s=stack: self._continue_stack(s),
                                    scope_key=key),
                TimeLabelObserver(self.bus, w["time"], scope_key=key, base_seconds=stack["total"]),
                MoneyLabelObserver(self.bus, w["money"], scope_key=key, base_seconds=stack["total"],
                                   rate=stack["rate"], currency=stack["currency"]),
            ]
            highlight.set_running(current is not None and current.group_key == key)
            # The running stack's row is built mid-session; bring it up to date straight away.
            if current is not None and current.group_key == key:
                for observer in observers:
                    observer.update(current)

            self._stack_observers.extend(observers)
            self._stack_keys.add(key)
            self._stack_lay.insertWidget(self._stack_lay.count() - 1, container)
        log.debug(f"Rebuilt stack list with {len(self._stack_keys)} stack(s)")

    # ------------------------------------------------------------------ #
    #  Tracking                                                            #
    # ------------------------------------------------------------------ #

    def _start_from_header(self):
        w = self._header
        text = w["name_input"].text()
        self._start(text if text.strip() else None, w["project"].currentData(), w["client"].currentData())

    # A name typed again in the header is numbered past the sessions already stored in its stack.
    def _start(self, name, project_id, client_id):
        self._guarded_start(self.authority.start, name, project_id, client_id, number_in_stack=True)

    def _continue_stack(self, stack):
        self._guarded_start(self.authority.continue_stack, stack["base_name"], stack["project_id"], stack["client_id"])

    def _guarded_start(self, start, *args, **kwargs):
        pomodoro = self.settings["pomodoro_minutes"] * 60 if self._header["pomodoro"].isChecked() else None
        try:
            start(*args, pomodoro_seconds=pomodoro, **kwargs)
        except ValidationError as e:
            self._show_invalid(e.reason)
        except PersistenceStartFailed as e:
            QMessageBox.warning(self, "Could not start", str(e))

    # A session for a stack with no row yet needs the list rebuilt. Deferred so it never runs mid fan-out.
    def _on_tracking_event(self, event):
        if event.event == EventType.TICK or event.group_key in self._stack_keys or self._rebuild_pending:
            return
        self._rebuild_pending = True
        QTimer.singleShot(0, self._rebuild_stacks)

    def _on_tracking_error(self, error: TrackingError):
        QMessageBox.warning(self, "Save Error", f"Tracking data could not be saved:\n{error}")

    def _show_invalid(self, reason):
        field = self._header["name_input"]
        field.setProperty("invalid", True)
        field.setToolTip(reason)
        field.style().unpolish(field)
        field.style().polish(field)
        field.setFocus()

    def _clear_invalid(self):
        field = self._header["name_input"]
        if field.property("invalid"):
            field.setProperty("invalid", False)
            field.setToolTip("")
            field.style().unpolish(field)
            field.style().polish(field)

    # Rows left open by a crash are offered for closing at their last checkpoint, never resumed.
    def _check_stale_sessions(self):
        stale = self.persistence.find_stale_sessions()
        if not stale:
            return
        lines = "\n".join(f"• {r['name']} (started {r['start_time']}, {format_duration(r['time_spent'])})"
                          for r in stale[:10])
        more = f"\n…and {len(stale) - 10} more" if len(stale) > 10 else ""
        if QMessageBox.question(
                self, "Unfinished sessions",
                f"These sessions were still running when the app last closed:\n\n{lines}{more}\n\n"
                "Close them at their last saved time?"
        ) != QMessageBox.Yes:
            return
        closed = sum(1 for row in stale if self.persistence.close_stale_session(row["id"]))
        log.info(f"Closed {closed} of {len(stale)} stale session(s)")
        self._rebuild_stacks()

    def _toggle_compact(self, visible):
        if visible:
            if self._compact is None:
                self._compact = CompactTrackerWindow(self.bus, self.authority, self._start_from_header)
            self._compact.show()
        elif self._compact is not None:
            self._compact.hide()

    # ------------------------------------------------------------------ #
    #  Window close                                                        #
    # ------------------------------------------------------------------ #

    def closeEvent(self, event):
        self.authority.shutdown()
        self._remove_error_listener()
        self.settings["show_compact_tracker"] = self._compact is not None and self._compact.isVisible()
        if self._compact is not None:
            self._compact.dispose()
            self._compact = None
        self._clear_stacks()
        self._stack_subscription.close()
        try:
            config.save_settings(self.settings)
        except OSError as e:
            log.exception("Failed to save settings on exit")
            QMessageBox.warning(self, "Save Error", f"Failed to save settings:\n{e}")
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())
