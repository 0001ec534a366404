"""Task identity: group keys and duplicate-name disambiguation.

Tasks that share a base name inside the same project and client form one
"stack". The base name is the task name with any trailing session suffix
such as " (3)" removed, so "Design", "Design (2)" and "Design(7)" all live
in the stack keyed ``Design::Website::ACME``.
"""

import re
from collections.abc import Iterable
from tt.core.errors import ValidationError

GROUP_KEY_SEPARATOR = "::"

_SUFFIX = re.compile(r"^(?P<base>.+?)\s*\((?P<number>\d+)\)$")


def split_name(raw_name: str) -> tuple[str, int | None]:
    """Return ``(base_name, suffix_number)``; the number is None without a suffix."""
    match = _SUFFIX.match(raw_name.strip())
    if match is None:
        return raw_name.strip(), None
    return match.group("base").strip(), int(match.group("number"))


def base_name(raw_name: str) -> str:
    return split_name(raw_name)[0]


def compute_group_key(raw_name: str, project_name: str, client_name: str) -> str:
    return GROUP_KEY_SEPARATOR.join((base_name(raw_name), project_name or "", client_name or ""))


def parse_group_key(group_key: str) -> tuple[str, str, str]:
    parts = group_key.split(GROUP_KEY_SEPARATOR)
    if len(parts) != 3:
        raise ValueError(f"Malformed group key '{group_key}'")
    return parts[0], parts[1], parts[2]


def resolve_unique_name(candidate: str, project_name: str, client_name: str,
                        in_use: Iterable[tuple[str, str, str]]) -> str:
    """Pick a name for a new task that does not reuse a session number in its stack.

    `in_use` holds ``(name, project_name, client_name)`` for every other task
    identity that is still live (active sessions, and existing rows when a
    fresh stack session is being numbered). If none of them share the
    candidate's group key the candidate is returned unchanged. Otherwise the
    smallest free " (N)" suffix, N >= 2, is appended to the base name. A name
    without a suffix counts as session 1, and the candidate's own number is
    treated as taken since it is the one that collided.
    """
    if not candidate or not candidate.strip():
        raise ValidationError("Task name cannot be empty")

    base, own_number = split_name(candidate)
    key = compute_group_key(candidate, project_name, client_name)

    taken = set()
    for name, other_project, other_client in in_use:
        if compute_group_key(name, other_project, other_client) == key:
            taken.add(split_name(name)[1] or 1)
    if not taken:
        return candidate.strip()

    taken.add(own_number or 1)
    number = 2
    while number in taken:
        number += 1
    return f"{base} ({number})"
