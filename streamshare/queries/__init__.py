"""Reports package."""

from streamshare.queries.reports import (
    ALL_MEMBERS,
    UNKNOWN_MEMBER_NAME,
    build_payment_report,
    filter_payments,
    selectable_years,
)

__all__ = [
    "ALL_MEMBERS",
    "UNKNOWN_MEMBER_NAME",
    "build_payment_report",
    "filter_payments",
    "selectable_years",
]
