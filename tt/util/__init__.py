"""Duration and timestamp helpers shared by the core and the UI."""
from .misc import (
    TIMESTAMP_FORMAT,
    calculate_duration,
    format_duration,
    format_money,
    format_time,
    normalize_timestamp,
    now_iso,
    parse_timestamp,
    wall_timestamp,
)

__all__ = [
    "TIMESTAMP_FORMAT", "calculate_duration", "format_duration", "format_money", "format_time",
    "normalize_timestamp", "now_iso", "parse_timestamp", "wall_timestamp",
]
