from datetime import datetime

# Canonical wall-clock format stored in the Task table's start_time/end_time columns.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Alternate formats accepted from edit fields and older rows.
_ACCEPTED_FORMATS = (
    TIMESTAMP_FORMAT,
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S.%f",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)

_CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "JPY": "¥",
    "UAH": "₴",
    "PLN": "zł",
}

#region === Durations ===

# Format elapsed seconds as HH:MM:SS. Negative values clamp to zero, hours keep counting past 24.
def format_time(seconds):
    seconds = max(0, int(seconds or 0))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"

# Short human form like "1h 23m" or "45m 12s". Seconds are only shown for durations under an hour.
def format_duration(seconds):
    seconds = int(seconds or 0)
    if seconds <= 0:
        return "0s"

    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 and hours == 0:
        parts.append(f"{secs}s")
    return " ".join(parts) if parts else "0s"

# Earnings for `seconds` of work at an hourly `rate`, e.g. "€12.50". Returns an empty string when there is
# nothing to show (no rate, or nothing earned yet).
def format_money(seconds, rate, currency="EUR"):
    if not rate or rate <= 0:
        return ""
    earnings = (max(0, seconds) / 3600) * rate
    if earnings <= 0:
        return ""
    code = (currency or "EUR").upper()
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {earnings:.2f}"
    return f"{symbol}{earnings:.2f}"

#endregion === Durations ===

#region === Timestamps ===

# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return datetime.now().astimezone().isoformat()

# Returns the given (or current) local time in the canonical YYYY-MM-DD HH:MM:SS storage format.
def wall_timestamp(dt=None):
    return (dt or datetime.now()).strftime(TIMESTAMP_FORMAT)

# Parses any accepted timestamp representation into a naive local datetime, or None if it can't be read.
# Offsets from ISO strings are converted to local time before being dropped.
def parse_timestamp(text):
    if isinstance(text, datetime):
        return text
    if not text or not isinstance(text, str):
        return None
    text = text.strip()
    for fmt in _ACCEPTED_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed

# Parses then re-formats into the canonical storage format, or None if unreadable.
def normalize_timestamp(text):
    parsed = parse_timestamp(text)
    if parsed is None:
        return None
    return wall_timestamp(parsed)

# Whole seconds between two timestamps. Zero when either side is unreadable or end isn't after start.
def calculate_duration(start, end):
    start_dt = parse_timestamp(start)
    end_dt = parse_timestamp(end)
    if start_dt is None or end_dt is None or end_dt <= start_dt:
        return 0
    return int((end_dt - start_dt).total_seconds())

#endregion === Timestamps ===
