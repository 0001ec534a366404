import time
from datetime import datetime
from tt.util.misc import wall_timestamp

# Time source for the tracking core. Elapsed time only ever comes from monotonic() (immune to clock changes),
# the wall-clock string is what gets written to the task table and shown to the user.
class SystemClock:

    def monotonic(self) -> float:
        return time.monotonic()

    def wall_timestamp(self) -> str:
        return wall_timestamp(datetime.now())

    # Both readings for a session start, taken back to back so they describe the same instant.
    def capture(self) -> tuple[float, str]:
        mono = self.monotonic()
        return mono, self.wall_timestamp()
