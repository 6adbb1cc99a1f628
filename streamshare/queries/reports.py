"""
Payment Reports

Filtering for the payment history view. Everything here reads the
snapshot and never writes.

The year filter is a substring match on the stored month label
("marzo de 2025" contains "2025"), which keeps working for legacy
labels that do not parse into a MonthKey.
"""

import re
from datetime import date
from typing import Iterable, Optional, Sequence

from streamshare.models.household import Member, Payment, PaymentReportRow


ALL_MEMBERS = "all"
UNKNOWN_MEMBER_NAME = "Unknown"

_YEAR_PATTERN = re.compile(r"\d{4}")


def filter_payments(
    payments: Iterable[Payment],
    member_filter: str = ALL_MEMBERS,
    year_filter: str = "",
) -> list[Payment]:
    """
    Subsequence of payments matching both filters, order preserved.

    Args:
        payments: Payments to filter
        member_filter: A member id, or "all"
        year_filter: Text the month label must contain
    """
    return [
        p for p in payments
        if (member_filter == ALL_MEMBERS or p.member_id == member_filter)
        and year_filter in p.month
    ]


def selectable_years(
    payments: Iterable[Payment],
    today: Optional[date] = None,
) -> list[str]:
    """
    Years offered in the report filter, newest first.

    The first 4-digit run in each month label, plus the current
    real-world year so the filter is never empty.
    """
    today = today or date.today()
    years = {str(today.year)}
    for payment in payments:
        match = _YEAR_PATTERN.search(payment.month)
        if match:
            years.add(match.group(0))
    return sorted(years, reverse=True)


def build_payment_report(
    payments: Iterable[Payment],
    members: Sequence[Member],
    member_filter: str = ALL_MEMBERS,
    year_filter: str = "",
) -> list[PaymentReportRow]:
    """
    Report rows for the filtered payments, with member names resolved.

    Payments whose member has been removed are still listed under
    UNKNOWN_MEMBER_NAME.
    """
    names = {m.id: m.name for m in members}
    return [
        PaymentReportRow(
            payment_id=p.id,
            member_id=p.member_id,
            member_name=names.get(p.member_id, UNKNOWN_MEMBER_NAME),
            month=p.month,
            date=p.date,
        )
        for p in filter_payments(payments, member_filter, year_filter)
    ]
