from PySide6.QtCore import QTimer

# Recurring tick on the Qt event loop. The TrackingAuthority builds one per session through its timer factory
# and stops it inside stop(), so the handle never outlives the session it drives.
class QtTickTimer:

    def __init__(self, parent=None):
        self._timer = QTimer(parent)
        self._callback = None

    @property
    def active(self):
        return self._timer.isActive()

    def start(self, callback, interval_ms):
        self._callback = callback
        self._timer.timeout.connect(callback)
        self._timer.start(interval_ms)

    def stop(self):
        self._timer.stop()
        if self._callback is not None:
            self._timer.timeout.disconnect(self._callback)
            self._callback = None
        self._timer.deleteLater()
