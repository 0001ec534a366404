from PySide6.QtCore import Qt
from PySide6.QtWidgets import QHBoxLayout, QLabel, QPushButton, QWidget
from tt.core.bus import ObserverKind
from tt.core.session import EventType
from tt.ui.observers import TimeLabelObserver, TrackButtonObserver, WidgetObserver

# Small always-on-top window mirroring whatever is being tracked.
class CompactTrackerWindow(QWidget):

    def __init__(self, bus, authority, on_start, parent=None):
        super().__init__(parent, Qt.Tool | Qt.WindowStaysOnTopHint)
        self.setWindowTitle("Task Timer")
        lay = QHBoxLayout(self)
        lay.setContentsMargins(8, 4, 8, 4)
        lay.setSpacing(6)

        self.task_lbl = QLabel("Idle")
        self.task_lbl.setMinimumWidth(140)
        lay.addWidget(self.task_lbl, 1)

        self.time_lbl = QLabel()
        lay.addWidget(self.time_lbl)

        self.track_btn = QPushButton()
        lay.addWidget(self.track_btn)

        self._observers = [
            _CompactTitleObserver(bus, self.task_lbl),
            TimeLabelObserver(bus, self.time_lbl),
            TrackButtonObserver(bus, self.track_btn, authority, on_start),
        ]

        current = authority.get_current_state()
        if current is not None:
            for observer in self._observers:
                observer.update(current)

    def closeEvent(self, event):
        self.hide()
        event.ignore()

    def dispose(self):
        for observer in self._observers:
            observer.close()
        self._observers.clear()
        self.deleteLater()


class _CompactTitleObserver(WidgetObserver):
    kind = ObserverKind.COMPACT

    def update(self, event):
        if event.event == EventType.STOP:
            self.widget.setText("Idle")
            self.widget.setToolTip("")
        else:
            self.widget.setText(event.task_name)
            self.widget.setToolTip(f"{event.project_name} · {event.client_name}")
