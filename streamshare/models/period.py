"""
Calendar Month Keys

Payments were historically keyed by a locale-formatted label such as
"febrero de 2026". A label is fragile: any change to the formatting
silently orphans old payments. MonthKey is the structured (year, month)
pair used internally; the label is derived from it for display and for
the legacy `month` column, and parsed back from stored labels when
they are well-formed.

Labels follow the es-MX long form: lower-case month name, " de ", year.
"""

import re
from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


MONTH_NAMES_ES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

# Spellings seen in older records that still name a real month
_MONTH_ALIASES = {
    "setiembre": 9,
}

_LABEL_PATTERN = re.compile(
    r"^\s*(?P<month>[a-záéíóúñ]+)\s+de(?:l)?\s+(?P<year>\d{4})\s*$",
    re.IGNORECASE,
)


class MonthKey(BaseModel):
    """
    A calendar month, identified by year and month number.

    Immutable and hashable, so it can be compared and used as a dict key.
    """
    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    @classmethod
    def from_date(cls, value: Union[date, datetime]) -> "MonthKey":
        """The month containing the given date."""
        return cls(year=value.year, month=value.month)

    @classmethod
    def current(cls) -> "MonthKey":
        """The month of today's real-world date."""
        return cls.from_date(date.today())

    @property
    def label(self) -> str:
        """Display and legacy storage label, e.g. "febrero de 2026"."""
        return format_month_label(self)

    def shift(self, months: int) -> "MonthKey":
        """Move by a number of calendar months (negative moves back)."""
        index = self.year * 12 + (self.month - 1) + months
        return MonthKey(year=index // 12, month=index % 12 + 1)

    def next(self) -> "MonthKey":
        return self.shift(1)

    def previous(self) -> "MonthKey":
        return self.shift(-1)

    def __lt__(self, other: "MonthKey") -> bool:
        return (self.year, self.month) < (other.year, other.month)

    def __str__(self) -> str:
        return self.label


def format_month_label(key: MonthKey) -> str:
    """Format a MonthKey the way payment labels are stored."""
    return f"{MONTH_NAMES_ES[key.month - 1]} de {key.year}"


def parse_month_label(label: Optional[str]) -> Optional[MonthKey]:
    """
    Parse a stored month label back into a MonthKey.

    Returns None for labels that do not name a month unambiguously;
    such records can still be matched by their exact text.
    """
    if not label:
        return None

    match = _LABEL_PATTERN.match(label)
    if not match:
        return None

    name = match.group("month").lower()
    if name in MONTH_NAMES_ES:
        month = MONTH_NAMES_ES.index(name) + 1
    elif name in _MONTH_ALIASES:
        month = _MONTH_ALIASES[name]
    else:
        return None

    return MonthKey(year=int(match.group("year")), month=month)


def format_payment_date(moment: Union[date, datetime]) -> str:
    """
    Format the real-world date a payment was recorded.

    Short es-MX form without zero padding: 19/10/2026.
    """
    return f"{moment.day}/{moment.month}/{moment.year}"
