"""
Roomly Backend - Field Validator
=================================

What:  Collects per-field validation messages and raises them as one
       ValidationError (HTTP 422).
How:   Services call `check(condition, field, message)` for every rule; the
       first failing message per field is kept.

Example:
    v = Validator()
    v.check(name != "", "name", "must be provided")
    v.check(len(name) <= 500, "name", "must not be more than 500 bytes long")
    v.raise_if_invalid()
"""

import re
from typing import Dict, Iterable, Pattern

from roomly.exceptions import ValidationError

MAX_INT32 = 2**31 - 1
MAX_INT64 = 2**63 - 1

EMAIL_RX: Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


class Validator:
    def __init__(self) -> None:
        self.errors: Dict[str, str] = {}

    def valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str) -> None:
        if key not in self.errors:
            self.errors[key] = message

    def check(self, ok: bool, key: str, message: str) -> None:
        if not ok:
            self.add_error(key, message)

    def raise_if_invalid(self) -> None:
        if not self.valid():
            raise ValidationError(errors=self.errors)


def byte_length(value: str) -> int:
    """Length limits are expressed in bytes (UTF-8), not characters."""
    return len(value.encode("utf-8"))


def matches(value: str, rx: Pattern[str]) -> bool:
    return rx.match(value) is not None


def permitted_value(value: str, permitted: Iterable[str]) -> bool:
    return value in set(permitted)


def unique(values: Iterable[str]) -> bool:
    values = list(values)
    return len(values) == len(set(values))
