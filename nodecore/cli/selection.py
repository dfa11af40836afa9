"""Parsing of interactive selections and validation of argument counts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")

_UINT64_MOD = 1 << 64
_DIGITS = re.compile(r"[0-9]+")


@dataclass
class SelectionOption(Generic[T]):
    """An option the user can pick from a list of choices."""

    element: T
    id: str = ""
    display: str = ""


class InvalidArgCountError(ValueError):
    """Raised when a command receives the wrong number of arguments."""

    def __init__(self, expected_count: int, actual_count: int) -> None:
        self.expected_count = expected_count
        self.actual_count = actual_count
        super().__init__(
            f"Incorrect argument count - expected {expected_count} but have {actual_count}"
        )


def validate_arg_count(arg_count: int, expected_count: int) -> None:
    """Raise InvalidArgCountError unless the counts match."""
    if arg_count != expected_count:
        raise InvalidArgCountError(expected_count, arg_count)


def _parse_uint(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid syntax: '{text}'")
    value = int(text)
    if value >= _UINT64_MOD:
        raise ValueError(f"value out of range: '{text}'")
    return value


def parse_index_selection(selection: str, options: Sequence[SelectionOption[T]]) -> list[T]:
    """Select elements by 1-based indices and ranges such as "1,3-5"; empty selects all."""
    if selection == "":
        return [option.element for option in options]

    count = len(options)
    seen: set[int] = set()
    selected: list[T] = []

    def add(index: int) -> None:
        if index not in seen:
            seen.add(index)
            selected.append(options[index].element)

    for element in (part.strip() for part in selection.split(",")):
        before, found, after = element.partition("-")
        if not found:
            try:
                index = _parse_uint(element)
            except ValueError as exc:
                raise ValueError(f"error parsing index '{element}': {exc}") from exc
            index = (index - 1) % _UINT64_MOD
            if index >= count:
                raise ValueError(f"selection '{element}' is too large")
            add(index)
            continue

        try:
            start = _parse_uint(before)
        except ValueError as exc:
            raise ValueError(f"error parsing range start in '{element}': {exc}") from exc
        try:
            end = _parse_uint(after)
        except ValueError as exc:
            raise ValueError(f"error parsing range end in '{element}': {exc}") from exc
        start = (start - 1) % _UINT64_MOD
        end = (end - 1) % _UINT64_MOD

        if end <= start:
            raise ValueError(f"range end for '{element}' is not greater than the start")
        if start >= count:
            raise ValueError(f"range start for '{element}' is too large")
        if end >= count:
            raise ValueError(f"range end for '{element}' is too large")
        for index in range(start, end + 1):
            add(index)
    return selected


def parse_option_ids(selection: str, options: Sequence[SelectionOption[T]]) -> list[T]:
    """Select elements by a comma-separated list of option IDs, ignoring duplicates."""
    unique_ids = list(dict.fromkeys(part.strip() for part in selection.split(",")))
    by_id: dict[str, T] = {}
    for option in options:
        by_id.setdefault(option.id, option.element)

    selected: list[T] = []
    for option_id in unique_ids:
        if option_id not in by_id:
            raise ValueError(f"element '{option_id}' is not a valid option")
        selected.append(by_id[option_id])
    return selected