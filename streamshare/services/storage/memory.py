"""
In-Memory Storage Implementation

Used for demo mode (no backend configured) and in tests. Rows are kept
as plain records and go through the same translation functions as the
remote backends, so the column mapping is exercised everywhere.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from streamshare.models.household import Member, Payment, Service
from streamshare.services.storage.interface import (
    HouseholdStorageInterface,
    NotFoundError,
)
from streamshare.services.storage.records import (
    member_from_record,
    new_member_record,
    new_payment_record,
    new_service_record,
    payment_from_record,
    service_from_record,
    service_members_to_record,
)


class InMemoryHouseholdStorage(HouseholdStorageInterface):
    """
    Process-local store with the same ordering rules as the real tables.

    Members and services are kept in insertion (created_at) order;
    payments are returned newest first.
    """

    def __init__(
        self,
        members: Optional[list[dict]] = None,
        services: Optional[list[dict]] = None,
        payments: Optional[list[dict]] = None,
    ):
        super().__init__()
        self._members: list[dict] = [dict(r) for r in members or []]
        self._services: list[dict] = [dict(r) for r in services or []]
        # Stored oldest first, like an append-only table
        self._payments: list[dict] = [dict(r) for r in payments or []]

    @staticmethod
    def _stamp(record: dict) -> dict:
        record["id"] = str(uuid4())
        record["created_at"] = datetime.now(timezone.utc).isoformat()
        return record

    @staticmethod
    def _without(rows: list[dict], row_id: str) -> list[dict]:
        return [r for r in rows if str(r["id"]) != row_id]

    # Members

    async def list_members(self) -> list[Member]:
        return [member_from_record(r) for r in self._members]

    async def insert_member(self, name: str) -> Member:
        record = self._stamp(new_member_record(name))
        self._members.append(record)
        return member_from_record(record)

    async def delete_member(self, member_id: str) -> None:
        self._members = self._without(self._members, member_id)

    # Services

    async def list_services(self) -> list[Service]:
        return [service_from_record(r) for r in self._services]

    async def insert_service(self, name: str, cost: Decimal) -> Service:
        record = self._stamp(new_service_record(name, cost))
        self._services.append(record)
        return service_from_record(record)

    async def delete_service(self, service_id: str) -> None:
        self._services = self._without(self._services, service_id)

    async def update_service_members(
        self,
        service_id: str,
        member_ids: list[str],
    ) -> None:
        for record in self._services:
            if str(record["id"]) == service_id:
                record.update(service_members_to_record(member_ids))
                return
        raise NotFoundError(f"Service not found: {service_id}")

    # Payments

    async def list_payments(self) -> list[Payment]:
        return [payment_from_record(r) for r in reversed(self._payments)]

    async def insert_payment(
        self,
        member_id: str,
        month: str,
        date: str,
    ) -> Payment:
        record = new_payment_record(member_id, month, date)
        record["id"] = str(uuid4())
        self._payments.append(record)
        return payment_from_record(record)

    async def delete_payment(self, payment_id: str) -> None:
        self._payments = self._without(self._payments, payment_id)
