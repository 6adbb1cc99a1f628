"""
Tests for StreamShare

Test strategy:
1. Unit tests for individual components (models, validators, allocation)
2. Integration tests for the ledger against the in-memory store
3. No real backend calls in tests (use the in-memory store or fakes)
"""

import pytest
from datetime import datetime
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from streamshare.models.household import (
    HouseholdSnapshot,
    HouseholdSummary,
    Member,
    MemberDebt,
    Payment,
    Service,
    round_money,
)
from streamshare.models.period import MonthKey


class TestMemberModel:
    """Tests for Member."""

    def test_member_creation(self):
        """Test Member model creation."""
        member = Member(id="m-1", name="Alice")
        assert member.id == "m-1"
        assert member.name == "Alice"
        assert member.created_at is None

    def test_member_strips_whitespace(self):
        """Test that whitespace is stripped from the name."""
        member = Member(id="m-1", name="  Alice  ")
        assert member.name == "Alice"

    def test_numeric_id_becomes_string(self):
        """Store-generated integer ids are treated as opaque strings."""
        member = Member(id=42, name="Alice")
        assert member.id == "42"

    def test_blank_name_rejected(self):
        """Test that an empty name is rejected."""
        with pytest.raises(PydanticValidationError):
            Member(id="m-1", name="   ")

    def test_created_at_parsed(self):
        """Test that ISO timestamps from the store are parsed."""
        member = Member(id="m-1", name="Alice", created_at="2025-01-01T10:00:00+00:00")
        assert isinstance(member.created_at, datetime)


class TestServiceModel:
    """Tests for Service and its participant list."""

    def test_null_member_ids_means_no_participants(self):
        """A null participant column reads as an empty list."""
        service = Service(id="s-1", name="Netflix", cost=Decimal("15"), member_ids=None)
        assert service.member_ids == []
        assert service.participant_count == 0

    def test_duplicate_member_ids_collapse(self):
        """Participants have set semantics but keep first-seen order."""
        service = Service(
            id="s-1",
            name="Netflix",
            cost=Decimal("15"),
            member_ids=["b", "a", "b", 7],
        )
        assert service.member_ids == ["b", "a", "7"]

    def test_stored_zero_cost_accepted(self):
        """Test a free service already in the store can be read."""
        service = Service(id="s-1", name="Trial", cost=Decimal("0"))
        assert service.cost == Decimal("0")

    def test_negative_cost_rejected(self):
        """Test that negative costs are rejected."""
        with pytest.raises(PydanticValidationError):
            Service(id="s-1", name="Netflix", cost=Decimal("-1"))

    def test_long_name_accepted(self):
        """Test names longer than the input limit still load."""
        service = Service(id="s-1", name="N" * 150, cost=Decimal("15"))
        assert len(service.name) == 150

    def test_toggle_appends_at_end(self):
        """Adding a participant puts them last."""
        service = Service(id="s-1", name="Netflix", cost=Decimal("15"), member_ids=["a", "b"])
        toggled = service.with_member_toggled("c")
        assert toggled.member_ids == ["a", "b", "c"]

    def test_toggle_removes_keeping_order(self):
        """Removing a participant keeps the others in place."""
        service = Service(id="s-1", name="Netflix", cost=Decimal("15"), member_ids=["a", "b", "c"])
        toggled = service.with_member_toggled("b")
        assert toggled.member_ids == ["a", "c"]

    def test_toggle_returns_copy(self):
        """The original service is never modified."""
        service = Service(id="s-1", name="Netflix", cost=Decimal("15"), member_ids=["a"])
        service.with_member_toggled("b")
        assert service.member_ids == ["a"]


class TestPaymentModel:
    """Tests for month matching on Payment."""

    def _payment(self, month: str) -> Payment:
        return Payment(id="p-1", member_id="m-1", month=month, date="3/2/2026")

    def test_exact_label_matches(self):
        """Test the legacy exact-string match."""
        assert self._payment("febrero de 2026").matches_month("febrero de 2026")

    def test_label_matches_month_key(self):
        """A well-formed label matches the equivalent MonthKey."""
        payment = self._payment("febrero de 2026")
        assert payment.matches_month(MonthKey(year=2026, month=2))
        assert not payment.matches_month(MonthKey(year=2025, month=2))

    def test_differently_cased_label_matches_structurally(self):
        """Labels differing only in formatting still match."""
        payment = self._payment("Febrero de 2026")
        assert payment.matches_month(MonthKey(year=2026, month=2))
        assert payment.matches_month("febrero de 2026")

    def test_malformed_label_matches_only_exactly(self):
        """Unparseable labels fall back to exact text equality."""
        payment = self._payment("feb-2026")
        assert payment.period is None
        assert payment.matches_month("feb-2026")
        assert not payment.matches_month(MonthKey(year=2026, month=2))

    def test_settles_checks_member(self):
        """Test that a payment only settles its own member's month."""
        payment = self._payment("febrero de 2026")
        assert payment.settles("m-1", "febrero de 2026")
        assert not payment.settles("m-2", "febrero de 2026")

    def test_numeric_member_id_coerced(self):
        """Test that integer foreign keys are compared as strings."""
        payment = Payment(id=1, member_id=5, month="enero de 2026", date="1/1/2026")
        assert payment.settles("5", MonthKey(year=2026, month=1))


class TestDerivedViews:
    """Tests for MemberDebt and HouseholdSummary helpers."""

    def test_round_money_half_up(self):
        """Test that display rounding is half-up to cents."""
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("10") / Decimal("3")) == Decimal("3.33")

    def test_total_due_display(self):
        """Test the two-decimal display string."""
        debt = MemberDebt(member_id="m-1", name="Alice", total_due=Decimal("7.5"), paid=False)
        assert debt.total_due_display == "7.50"

    def test_summary_collected_and_outstanding(self):
        """Test paid/unpaid totals on the summary."""
        summary = HouseholdSummary(
            month=MonthKey(year=2026, month=2),
            total_cost=Decimal("25"),
            member_count=2,
            service_count=2,
            member_debts=[
                MemberDebt(member_id="a", name="A", total_due=Decimal("17.5"), paid=True, payment_date="1/2/2026"),
                MemberDebt(member_id="b", name="B", total_due=Decimal("7.5"), paid=False),
            ],
            service_shares=[],
        )
        assert summary.paid_count == 1
        assert summary.collected == Decimal("17.50")
        assert summary.outstanding == Decimal("7.50")
        assert summary.all_paid is False

    def test_nothing_owed_is_not_all_paid(self):
        """Test members owing 0.00 who have not paid are not settled."""
        summary = HouseholdSummary(
            month=MonthKey(year=2026, month=2),
            total_cost=Decimal("8"),
            member_count=2,
            service_count=1,
            member_debts=[
                MemberDebt(member_id="a", name="A", total_due=Decimal("0"), paid=False),
                MemberDebt(member_id="b", name="B", total_due=Decimal("0"), paid=False),
            ],
        )
        assert summary.outstanding == Decimal("0.00")
        assert summary.all_paid is False

    def test_all_paid(self):
        """Test every member marked paid settles the month."""
        summary = HouseholdSummary(
            month=MonthKey(year=2026, month=2),
            total_cost=Decimal("8"),
            member_count=1,
            service_count=1,
            member_debts=[
                MemberDebt(member_id="a", name="A", total_due=Decimal("8"), paid=True, payment_date="1/2/2026"),
            ],
        )
        assert summary.all_paid is True

    def test_empty_household_not_all_paid(self):
        """Test a household without members has nobody settled."""
        summary = HouseholdSummary(
            month=MonthKey(year=2026, month=2),
            total_cost=Decimal("0"),
            member_count=0,
            service_count=0,
        )
        assert summary.all_paid is False


class TestHouseholdSnapshot:
    """Tests for snapshot lookups."""

    def test_find_and_replace_service(self):
        """Test replacing a service in place."""
        snapshot = HouseholdSnapshot(
            services=[
                Service(id="s-1", name="Netflix", cost=Decimal("15")),
                Service(id="s-2", name="Spotify", cost=Decimal("10")),
            ],
        )
        updated = snapshot.find_service("s-1").with_member_toggled("m-1")
        snapshot.replace_service(updated)

        assert [s.id for s in snapshot.services] == ["s-1", "s-2"]
        assert snapshot.find_service("s-1").member_ids == ["m-1"]
        assert snapshot.find_service("missing") is None

    def test_services_with_member(self):
        """Test listing the services a member participates in."""
        snapshot = HouseholdSnapshot(
            services=[
                Service(id="s-1", name="Netflix", cost=Decimal("15"), member_ids=["m-1"]),
                Service(id="s-2", name="Spotify", cost=Decimal("10")),
            ],
        )
        assert [s.id for s in snapshot.services_with_member("m-1")] == ["s-1"]

    def test_find_payment_by_month_key(self):
        """Test finding a payment for a member and month."""
        snapshot = HouseholdSnapshot(
            payments=[Payment(id="p-1", member_id="m-1", month="marzo de 2025", date="2/3/2025")],
        )
        assert snapshot.find_payment("m-1", MonthKey(year=2025, month=3)).id == "p-1"
        assert snapshot.find_payment("m-1", MonthKey(year=2026, month=3)) is None
