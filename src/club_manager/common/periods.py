from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator

MONTH_NAMES_FR = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)


@dataclass(frozen=True, order=True)
class Period:
    """A dues period: one calendar month."""

    year: int
    month: int

    @classmethod
    def of(cls, value: date | datetime) -> "Period":
        return cls(value.year, value.month)

    def next(self) -> "Period":
        if self.month == 12:
            return Period(self.year + 1, 1)
        return Period(self.year, self.month + 1)

    def shift(self, months: int) -> "Period":
        index = self.year * 12 + (self.month - 1) + months
        return Period(index // 12, index % 12 + 1)

    @property
    def label(self) -> str:
        return f"{MONTH_NAMES_FR[self.month - 1]} {self.year}"

    def as_dict(self) -> dict:
        return {"year": self.year, "month": self.month}


def iter_periods(start: Period, end: Period) -> Iterator[Period]:
    """Yield every period from start through end (inclusive)."""
    current = start
    while current <= end:
        yield current
        current = current.next()
