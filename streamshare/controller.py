"""
Application Controller

Owns all UI state explicitly: which tab is shown, which month is
selected, and the report filters. Views read from the controller and
send user intents to it; nothing else holds mutable UI state.

Month navigation only changes which month is computed and shown.
It never touches stored data.
"""

from datetime import date
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel, Field

from streamshare.allocation import compute_member_debts, summarize_household
from streamshare.models.household import (
    HouseholdSnapshot,
    HouseholdSummary,
    Member,
    MemberDebt,
    PaymentReportRow,
    Service,
)
from streamshare.models.period import MonthKey
from streamshare.orchestrator import HouseholdLedger
from streamshare.queries import ALL_MEMBERS, build_payment_report, selectable_years
from streamshare.services.storage import PersistenceError
from streamshare.validation import ValidationError


T = TypeVar("T")


class Tab(str, Enum):
    """Top-level views."""
    DASHBOARD = "dashboard"
    REPORTS = "reports"
    MANAGE = "manage"


class ViewState(BaseModel):
    """Everything the UI remembers between interactions."""

    active_tab: Tab = Tab.DASHBOARD
    selected_month: MonthKey = Field(default_factory=MonthKey.current)
    report_member_filter: str = ALL_MEMBERS
    report_year_filter: str = Field(default_factory=lambda: str(date.today().year))
    last_error: Optional[str] = None


class AppController:
    """
    Single owner of view state, sitting in front of the ledger.

    Args:
        ledger: The mutation orchestrator
        view: Initial view state (defaults to today's month, dashboard)
        today: Source of the real-world date for the year filter
    """

    def __init__(
        self,
        ledger: HouseholdLedger,
        view: Optional[ViewState] = None,
        today: Callable[[], date] = date.today,
    ):
        self._ledger = ledger
        self._today = today
        self._view = view or ViewState(
            selected_month=MonthKey.from_date(today()),
            report_year_filter=str(today().year),
        )

    @property
    def view(self) -> ViewState:
        return self._view

    @property
    def snapshot(self) -> HouseholdSnapshot:
        return self._ledger.snapshot

    @property
    def month_label(self) -> str:
        return self._view.selected_month.label

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def previous_month(self) -> MonthKey:
        self._view.selected_month = self._view.selected_month.previous()
        return self._view.selected_month

    def next_month(self) -> MonthKey:
        self._view.selected_month = self._view.selected_month.next()
        return self._view.selected_month

    def select_month(self, month: MonthKey) -> None:
        self._view.selected_month = month

    def select_tab(self, tab: Tab) -> None:
        self._view.active_tab = Tab(tab)

    def set_report_filters(
        self,
        member: Optional[str] = None,
        year: Optional[str] = None,
    ) -> None:
        """Update either report filter; None leaves it as is."""
        if member is not None:
            self._view.report_member_filter = member
        if year is not None:
            self._view.report_year_filter = year

    def clear_error(self) -> None:
        self._view.last_error = None

    def is_busy(self, *key) -> bool:
        """Is a write on this entity still in flight?"""
        return self._ledger.locks.is_busy(*key)

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    def summary(self) -> HouseholdSummary:
        return summarize_household(self.snapshot, self._view.selected_month)

    def member_debts(self) -> list[MemberDebt]:
        snapshot = self.snapshot
        return compute_member_debts(
            snapshot.members,
            snapshot.services,
            snapshot.payments,
            self._view.selected_month,
        )

    def available_years(self) -> list[str]:
        return selectable_years(self.snapshot.payments, today=self._today())

    def report_rows(self) -> list[PaymentReportRow]:
        return build_payment_report(
            self.snapshot.payments,
            self.snapshot.members,
            member_filter=self._view.report_member_filter,
            year_filter=self._view.report_year_filter,
        )

    # -------------------------------------------------------------------------
    # Intents
    # -------------------------------------------------------------------------

    async def _run(self, action: Awaitable[T]) -> T:
        """Await a ledger call, remembering its error for display."""
        try:
            result = await action
        except (ValidationError, PersistenceError) as e:
            self._view.last_error = str(e)
            raise
        self._view.last_error = None
        return result

    async def refresh(self) -> HouseholdSnapshot:
        return await self._run(self._ledger.load())

    async def toggle_payment(self, member_id: str) -> bool:
        """Mark or unmark the member for the selected month."""
        return await self._run(
            self._ledger.toggle_payment(member_id, self._view.selected_month)
        )

    async def add_service(self, name, cost) -> Service:
        return await self._run(self._ledger.add_service(name, cost))

    async def remove_service(self, service_id: str) -> None:
        await self._run(self._ledger.remove_service(service_id))

    async def add_member(self, name) -> Member:
        return await self._run(self._ledger.add_member(name))

    async def remove_member(self, member_id: str) -> None:
        await self._run(self._ledger.remove_member(member_id))
        if self._view.report_member_filter == member_id:
            self._view.report_member_filter = ALL_MEMBERS

    async def toggle_member_in_service(self, service_id: str, member_id: str) -> Service:
        return await self._run(
            self._ledger.toggle_member_in_service(service_id, member_id)
        )
