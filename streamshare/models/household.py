"""
Core Data Models for StreamShare

These models define the schemas for the household snapshot:
members, the subscriptions they share, and the monthly payments
that settle each member's share.

Ids are opaque, store-assigned strings. Backends that hand out
integer ids are normalised to strings on the way in.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)

from streamshare.models.period import MonthKey, parse_month_label


CENT = Decimal("0.01")

# Accepted wherever a target month is expected: a structured key or a
# legacy label string.
MonthRef = Union[MonthKey, str]


def _coerce_id(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    return value


OpaqueId = Annotated[str, BeforeValidator(_coerce_id)]


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return Decimal(amount).quantize(CENT, ROUND_HALF_UP)


# =============================================================================
# STORED ENTITIES
# =============================================================================

class Member(BaseModel):
    """A person sharing subscription costs."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: OpaqueId = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        description="Display name"
    )
    created_at: Optional[datetime] = Field(
        default=None,
        description="Store-assigned creation timestamp"
    )


class Service(BaseModel):
    """
    A recurring subscription shared among a set of members.

    `member_ids` has set semantics but keeps its stored order, so a
    toggle appends at the end and a removal keeps the others in place.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: OpaqueId = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        description="Service name, e.g. Netflix"
    )
    cost: Decimal = Field(
        ...,
        ge=0,
        description="Monthly cost"
    )
    member_ids: list[str] = Field(
        default_factory=list,
        description="Participating member ids"
    )
    created_at: Optional[datetime] = None

    @field_validator('member_ids', mode='before')
    @classmethod
    def normalise_member_ids(cls, v: Any) -> list:
        """Null means no participants; duplicates collapse to the first occurrence."""
        if v is None:
            return []
        seen = []
        for item in v:
            item = _coerce_id(item)
            if item not in seen:
                seen.append(item)
        return seen

    @property
    def participant_count(self) -> int:
        return len(self.member_ids)

    def has_member(self, member_id: str) -> bool:
        return member_id in self.member_ids

    def with_member_toggled(self, member_id: str) -> "Service":
        """A copy with the member added if absent, removed if present."""
        if self.has_member(member_id):
            return self.without_member(member_id)
        return self.model_copy(update={"member_ids": [*self.member_ids, member_id]})

    def without_member(self, member_id: str) -> "Service":
        return self.model_copy(
            update={"member_ids": [mid for mid in self.member_ids if mid != member_id]}
        )


class Payment(BaseModel):
    """
    Evidence that a member settled their share for one month.

    There is no "unpaid" record: no Payment for (member, month) means
    unpaid. `month` keeps the stored label; `date` is when the payment
    was marked, not the month it pays for.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: OpaqueId = Field(..., min_length=1)
    member_id: OpaqueId = Field(..., min_length=1)
    month: str = Field(
        ...,
        min_length=1,
        description="Month label, e.g. 'febrero de 2026'"
    )
    date: str = Field(
        ...,
        description="Real-world date the payment was recorded"
    )

    @property
    def period(self) -> Optional[MonthKey]:
        """Structured month parsed from the label, if the label is well-formed."""
        return parse_month_label(self.month)

    def matches_month(self, target: MonthRef) -> bool:
        """
        Does this payment settle the target month?

        Exact label equality always matches. Otherwise both sides must
        parse to the same MonthKey; malformed labels only match exactly.
        """
        if isinstance(target, MonthKey):
            target_label = target.label
            target_key: Optional[MonthKey] = target
        else:
            target_label = target
            target_key = parse_month_label(target)

        if self.month == target_label:
            return True
        if target_key is None:
            return False
        return self.period == target_key

    def settles(self, member_id: str, target: MonthRef) -> bool:
        return self.member_id == member_id and self.matches_month(target)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class MemberDebt(BaseModel):
    """
    A member's total due and payment status for one month.

    `total_due` is the unrounded sum of shares; use
    `total_due_display` for presentation.
    """

    member_id: str
    name: str
    total_due: Decimal = Field(default=Decimal("0"))
    paid: bool = False
    payment_date: Optional[str] = None

    @property
    def amount_due(self) -> Decimal:
        """Total due rounded to cents."""
        return round_money(self.total_due)

    @property
    def total_due_display(self) -> str:
        return f"{self.amount_due:.2f}"


class ServiceShare(BaseModel):
    """Per-head breakdown of one service."""

    service_id: str
    name: str
    cost: Decimal
    participant_count: int = Field(ge=0)
    share: Decimal

    @property
    def share_display(self) -> str:
        return f"{round_money(self.share):.2f}"


class HouseholdSummary(BaseModel):
    """Everything the dashboard shows for the selected month."""

    month: MonthKey
    total_cost: Decimal
    member_count: int = Field(ge=0)
    service_count: int = Field(ge=0)
    member_debts: list[MemberDebt] = Field(default_factory=list)
    service_shares: list[ServiceShare] = Field(default_factory=list)

    @property
    def paid_count(self) -> int:
        return sum(1 for debt in self.member_debts if debt.paid)

    @property
    def all_paid(self) -> bool:
        """Every member is marked paid for the month."""
        return self.member_count > 0 and self.paid_count == self.member_count

    @property
    def collected(self) -> Decimal:
        """Amount already settled by members marked paid."""
        return round_money(sum((d.total_due for d in self.member_debts if d.paid), Decimal("0")))

    @property
    def outstanding(self) -> Decimal:
        """Amount still owed by members not marked paid."""
        return round_money(sum((d.total_due for d in self.member_debts if not d.paid), Decimal("0")))


class PaymentReportRow(BaseModel):
    """One line of the payment history report."""

    payment_id: str
    member_id: str
    member_name: str
    month: str
    date: str


# =============================================================================
# SNAPSHOT
# =============================================================================

class SkippedRow(BaseModel):
    """A stored row that could not be read into the snapshot."""

    table: str
    row_id: Optional[str] = None
    reason: str


class HouseholdSnapshot(BaseModel):
    """
    The full in-memory copy of the three tables.

    Members and services keep store order (by created_at). Payments
    are newest-registration-first. Lookups are linear scans; the
    expected size is tens of rows.
    """

    members: list[Member] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    skipped_rows: list[SkippedRow] = Field(
        default_factory=list,
        description="Rows left out of this load, for the user to fix in the store"
    )

    def find_member(self, member_id: str) -> Optional[Member]:
        return next((m for m in self.members if m.id == member_id), None)

    def find_service(self, service_id: str) -> Optional[Service]:
        return next((s for s in self.services if s.id == service_id), None)

    def find_payment(self, member_id: str, target: MonthRef) -> Optional[Payment]:
        """The payment settling (member, month), if any."""
        return next((p for p in self.payments if p.settles(member_id, target)), None)

    def replace_service(self, service: Service) -> None:
        """Swap in a new version of a service, keeping its position."""
        self.services = [service if s.id == service.id else s for s in self.services]

    def services_with_member(self, member_id: str) -> list[Service]:
        return [s for s in self.services if s.has_member(member_id)]
