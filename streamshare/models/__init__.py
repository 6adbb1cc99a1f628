"""
Data Models Package

This package contains all Pydantic models used in StreamShare.
All data flowing through the system must conform to these schemas.
"""

from streamshare.models.household import (
    HouseholdSnapshot,
    HouseholdSummary,
    Member,
    MemberDebt,
    MonthRef,
    Payment,
    PaymentReportRow,
    Service,
    ServiceShare,
    SkippedRow,
    round_money,
)
from streamshare.models.period import (
    MONTH_NAMES_ES,
    MonthKey,
    format_month_label,
    format_payment_date,
    parse_month_label,
)

__all__ = [
    # Household models
    "HouseholdSnapshot",
    "HouseholdSummary",
    "Member",
    "MemberDebt",
    "MonthRef",
    "Payment",
    "PaymentReportRow",
    "Service",
    "ServiceShare",
    "SkippedRow",
    "round_money",
    # Calendar months
    "MONTH_NAMES_ES",
    "MonthKey",
    "format_month_label",
    "format_payment_date",
    "parse_month_label",
]
