"""Error taxonomy for the tracking core.

Validation and start failures propagate to whoever asked for the transition.
Stop failures are reported to error listeners after the session has already
gone idle. Checkpoint failures never leave the persistence layer.
"""


class TrackingError(Exception):
    """Base class for every error the tracking core raises or reports."""


class ValidationError(TrackingError):
    """Bad user input. Nothing was changed."""

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class PersistenceWriteFailed(TrackingError):
    """A start or stop write did not land in the task table."""

    def __init__(self, message, task_id=None):
        super().__init__(message)
        self.task_id = task_id


class PersistenceStartFailed(PersistenceWriteFailed):
    """The insert for a new session affected no rows. The session never started."""


class PersistenceStopFailed(PersistenceWriteFailed):
    """Closing the task row affected no rows. The row stays open in storage."""


class PersistenceCheckpointFailed(PersistenceWriteFailed):
    """A periodic elapsed-time write missed. Logged only, the next tick retries."""
