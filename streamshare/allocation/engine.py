"""
Allocation Engine

Pure functions that turn a household snapshot into what each member
owes for a month.

GUARANTEES:
- No side effects and no store access
- Deterministic for a given snapshot
- Output order follows input member order
- Shares are accumulated unrounded; rounding happens only for display

A service's per-head share is cost / max(1, participants). A service
with no participants therefore reports its full cost as the share but
is owed by nobody.
"""

from decimal import Decimal
from typing import Iterable, Sequence

from streamshare.models.household import (
    HouseholdSnapshot,
    HouseholdSummary,
    Member,
    MemberDebt,
    MonthRef,
    Payment,
    Service,
    ServiceShare,
)
from streamshare.models.period import MonthKey, parse_month_label


def compute_per_service_share(service: Service) -> Decimal:
    """Cost per participant; the divisor is never below one."""
    return service.cost / Decimal(max(1, service.participant_count))


def compute_total_cost(services: Iterable[Service]) -> Decimal:
    """Household's total monthly spend, undivided."""
    return sum((s.cost for s in services), Decimal("0"))


def compute_member_debts(
    members: Sequence[Member],
    services: Sequence[Service],
    payments: Sequence[Payment],
    target_month: MonthRef,
) -> list[MemberDebt]:
    """
    Compute each member's total due and payment status for a month.

    Args:
        members: Members in display order
        services: All services with their participant lists
        payments: All recorded payments
        target_month: MonthKey, or a label produced by the same
            formatting used when the payments were recorded

    Returns:
        One MemberDebt per member, in input order
    """
    shares = [(s, compute_per_service_share(s)) for s in services]

    debts = []
    for member in members:
        total_due = Decimal("0")
        for service, share in shares:
            if service.has_member(member.id):
                total_due += share

        payment = next(
            (p for p in payments if p.settles(member.id, target_month)),
            None,
        )

        debts.append(MemberDebt(
            member_id=member.id,
            name=member.name,
            total_due=total_due,
            paid=payment is not None,
            payment_date=payment.date if payment else None,
        ))

    return debts


def compute_service_shares(services: Sequence[Service]) -> list[ServiceShare]:
    """Per-service breakdown, in input order."""
    return [
        ServiceShare(
            service_id=s.id,
            name=s.name,
            cost=s.cost,
            participant_count=s.participant_count,
            share=compute_per_service_share(s),
        )
        for s in services
    ]


def summarize_household(
    snapshot: HouseholdSnapshot,
    target_month: MonthRef,
) -> HouseholdSummary:
    """Everything the dashboard needs for one month, in one pass."""
    if isinstance(target_month, MonthKey):
        month = target_month
    else:
        month = parse_month_label(target_month)
        if month is None:
            raise ValueError(f"Not a month label: {target_month!r}")

    return HouseholdSummary(
        month=month,
        total_cost=compute_total_cost(snapshot.services),
        member_count=len(snapshot.members),
        service_count=len(snapshot.services),
        member_debts=compute_member_debts(
            snapshot.members,
            snapshot.services,
            snapshot.payments,
            target_month,
        ),
        service_shares=compute_service_shares(snapshot.services),
    )
