"""Extraction and validation of request arguments from parsed query strings."""

from __future__ import annotations

from typing import Callable, Mapping, Sequence, TypeVar, Union

T = TypeVar("T")

ArgValue = Union[str, Sequence[str]]
ArgValidator = Callable[[str, str], T]


class MissingArgumentError(ValueError):
    """Raised when a required request argument is absent."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"missing argument '{name}'")


def _first(value: ArgValue) -> str:
    if isinstance(value, str):
        return value
    return value[0]


def validate_arg(name: str, args: Mapping[str, ArgValue], validator: ArgValidator[T]) -> T:
    """Convert a required argument with the validator; errors from it propagate."""
    if name not in args:
        raise MissingArgumentError(name)
    return validator(name, _first(args[name]))


def validate_optional_arg(
    name: str, args: Mapping[str, ArgValue], validator: ArgValidator[T]
) -> T | None:
    """Convert an argument with the validator if present; None when it is absent."""
    if name not in args:
        return None
    return validator(name, _first(args[name]))


def get_string_from_vars(name: str, args: Mapping[str, ArgValue]) -> str:
    """Return a required string argument."""
    if name not in args:
        raise MissingArgumentError(name)
    return _first(args[name])


def get_optional_string_from_vars(name: str, args: Mapping[str, ArgValue]) -> str | None:
    """Return a string argument, or None if it is absent."""
    if name not in args:
        return None
    return _first(args[name])