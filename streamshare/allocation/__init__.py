"""Allocation package."""

from streamshare.allocation.engine import (
    compute_member_debts,
    compute_per_service_share,
    compute_service_shares,
    compute_total_cost,
    summarize_household,
)

__all__ = [
    "compute_member_debts",
    "compute_per_service_share",
    "compute_service_shares",
    "compute_total_cost",
    "summarize_household",
]
