"""Human-friendly formatting of durations, byte sizes and counts."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Union

DurationLike = Union[timedelta, int, float]

_SECOND = 1_000_000
_MINUTE = 60 * _SECOND
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR
_WEEK = 7 * _DAY
_YEAR = 365 * _DAY

_UNITS = (
    (_YEAR, "year", "y"),
    (_WEEK, "week", "w"),
    (_DAY, "day", "d"),
    (_HOUR, "hour", "h"),
    (_MINUTE, "minute", "m"),
    (_SECOND, "second", "s"),
)

_BINARY_PREFIXES = ("Ki", "Mi", "Gi", "Ti", "Pi", "Ei", "Zi", "Yi")
_DECIMAL_PREFIXES = ("k", "M", "G", "T", "P", "E", "Z", "Y")


def _micros(value: DurationLike) -> int:
    """Convert a timedelta or a number of seconds to whole microseconds."""
    if isinstance(value, timedelta):
        micros = (value.days * 86_400 + value.seconds) * _SECOND + value.microseconds
    elif isinstance(value, bool):
        raise TypeError("a duration must be a timedelta or a number of seconds")
    elif isinstance(value, int):
        micros = value * _SECOND
    elif isinstance(value, float):
        micros = round(value * _SECOND)
    else:
        raise TypeError("a duration must be a timedelta or a number of seconds")
    if micros < 0:
        raise ValueError("a duration must not be negative")
    return micros


def _group_thousands(digits: str) -> str:
    sign = ""
    if digits.startswith("-"):
        sign, digits = "-", digits[1:]
    if not digits.isdigit():
        return sign + digits
    return f"{sign}{int(digits):,}"


def _prefixed_bytes(amount: int, base: int, prefixes: tuple[str, ...]) -> str:
    number = float(amount)
    if abs(number) < base:
        return f"{number:.0f}B"
    negative = number < 0
    number = abs(number)
    level = 0
    while number >= base and level < len(prefixes):
        number /= base
        level += 1
    if negative:
        number = -number
    return f"{number:.2f} {prefixes[level - 1]}B"


@dataclass(frozen=True)
class FormattedDuration:
    """A duration shown as ``HH:MM:SS``, with a day count when needed."""

    duration: DurationLike

    def __str__(self) -> str:
        total = _micros(self.duration) // _SECOND
        total, seconds = divmod(total, 60)
        total, minutes = divmod(total, 60)
        days, hours = divmod(total, 24)
        if days > 0:
            return f"{days}d {hours:02}:{minutes:02}:{seconds:02}"
        return f"{hours:02}:{minutes:02}:{seconds:02}"


@dataclass(frozen=True)
class HumanDuration:
    """A duration rounded to its most fitting unit, such as ``3 minutes``.

    Formatting with the ``#`` flag gives the short form, such as ``3m``.
    """

    duration: DurationLike

    def _render(self, alternate: bool) -> str:
        micros = _micros(self.duration)
        index = len(_UNITS) - 1
        for position, (current, _, _) in enumerate(_UNITS[:-1]):
            following = _UNITS[position + 1][0]
            # duration + following/2 >= 1.5 * current, kept in integers
            if 2 * micros + following >= 3 * current:
                index = position
                break

        unit, name, short = _UNITS[index]
        count = (2 * micros + unit) // (2 * unit)
        if index < len(_UNITS) - 1:
            count = max(count, 2)

        if alternate:
            return f"{count}{short}"
        if count == 1:
            return f"{count} {name}"
        return f"{count} {name}s"

    def __str__(self) -> str:
        return self._render(False)

    def __format__(self, spec: str) -> str:
        alternate = spec.startswith("#")
        rest = spec[1:] if alternate else spec
        return format(self._render(alternate), rest)


@dataclass(frozen=True)
class HumanBytes:
    """A byte count with binary prefixes, such as ``3.00 MiB``."""

    value: int

    def __str__(self) -> str:
        return _prefixed_bytes(self.value, 1024, _BINARY_PREFIXES)


@dataclass(frozen=True)
class DecimalBytes:
    """A byte count with SI prefixes, such as ``3.00 MB``."""

    value: int

    def __str__(self) -> str:
        return _prefixed_bytes(self.value, 1000, _DECIMAL_PREFIXES)


@dataclass(frozen=True)
class BinaryBytes:
    """A byte count with ISO/IEC prefixes, such as ``3.00 MiB``."""

    value: int

    def __str__(self) -> str:
        return _prefixed_bytes(self.value, 1024, _BINARY_PREFIXES)


@dataclass(frozen=True)
class HumanCount:
    """An integer count with commas between thousands."""

    value: int

    def __str__(self) -> str:
        return _group_thousands(str(int(self.value)))


@dataclass(frozen=True)
class HumanFloatCount:
    """A float count with commas between thousands and at most four decimals."""

    value: float

    def __str__(self) -> str:
        text = f"{self.value:.4f}"
        if "." in text:
            int_part, frac_part = text.split(".", 1)
        else:
            int_part = text if not math.isfinite(self.value) else str(math.trunc(self.value))
            frac_part = ""
        result = _group_thousands(int_part)
        frac_trimmed = frac_part.rstrip("0")
        if frac_trimmed:
            result += "." + frac_trimmed
        return result