"""
Shared fixtures.

No test talks to a real backend: the in-memory store stands in for
Supabase and Google Sheets, and FailingStorage lets a test make any
single store operation fail on demand.
"""

import asyncio
from datetime import datetime

import pytest
import pytest_asyncio

from streamshare.orchestrator import HouseholdLedger
from streamshare.services.storage import InMemoryHouseholdStorage, PersistenceError


FIXED_NOW = datetime(2026, 2, 3, 18, 30)


class FailingStorage(InMemoryHouseholdStorage):
    """
    In-memory store whose operations can be made to fail.

    Add an operation name ("insert_member", "update_service_members", ...)
    to `failures` to make every call to it raise PersistenceError. For
    update_service_members, a (name, service_id) tuple fails only that
    service.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures: set = set()
        self.calls: list[tuple] = []

    def _check(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        if operation in self.failures or (operation, *args[:1]) in self.failures:
            raise PersistenceError(f"{operation} failed")

    async def list_members(self):
        self._check("list_members")
        return await super().list_members()

    async def insert_member(self, name):
        self._check("insert_member", name)
        return await super().insert_member(name)

    async def delete_member(self, member_id):
        self._check("delete_member", member_id)
        return await super().delete_member(member_id)

    async def list_services(self):
        self._check("list_services")
        return await super().list_services()

    async def insert_service(self, name, cost):
        self._check("insert_service", name)
        return await super().insert_service(name, cost)

    async def delete_service(self, service_id):
        self._check("delete_service", service_id)
        return await super().delete_service(service_id)

    async def update_service_members(self, service_id, member_ids):
        self._check("update_service_members", service_id)
        return await super().update_service_members(service_id, member_ids)

    async def insert_payment(self, member_id, month, date):
        await asyncio.sleep(0.01)
        return await super().insert_payment(member_id, month, date)

    async def list_payments(self):
        self._check("list_payments")
        return await super().list_payments()

    async def insert_payment(self, member_id, month, date):
        self._check("insert_payment", member_id)
        return await super().insert_payment(member_id, month, date)

    async def delete_payment(self, payment_id):
        self._check("delete_payment", payment_id)
        return await super().delete_payment(payment_id)


class SlowStorage(InMemoryHouseholdStorage):
    """Store whose participant updates and payment inserts yield to the event loop first."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.updates: list[list[str]] = []

    async def update_service_members(self, service_id, member_ids):
        await asyncio.sleep(0.01)
        self.updates.append(list(member_ids))
        return await super().update_service_members(service_id, member_ids)


def seed_records():
    """Alice and Bob share Netflix; Alice alone pays Spotify; Disney has nobody."""
    members = [
        {"id": "m-alice", "name": "Alice", "created_at": "2025-01-01T00:00:00+00:00"},
        {"id": "m-bob", "name": "Bob", "created_at": "2025-01-02T00:00:00+00:00"},
        {"id": "m-carol", "name": "Carol", "created_at": "2025-01-03T00:00:00+00:00"},
    ]
    services = [
        {"id": "s-netflix", "name": "Netflix", "cost": "15.00", "member_ids": ["m-alice", "m-bob"]},
        {"id": "s-spotify", "name": "Spotify", "cost": "10.00", "member_ids": ["m-alice"]},
        {"id": "s-disney", "name": "Disney+", "cost": "8.00", "member_ids": None},
    ]
    payments = [
        {"id": "p-1", "member_id": "m-alice", "month": "enero de 2026", "date": "5/1/2026"},
        {"id": "p-2", "member_id": "m-bob", "month": "febrero de 2026", "date": "2/2/2026"},
    ]
    return members, services, payments


@pytest.fixture
def storage():
    members, services, payments = seed_records()
    return FailingStorage(members=members, services=services, payments=payments)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest_asyncio.fixture
async def ledger(storage, clock):
    ledger = HouseholdLedger(storage, clock=clock)
    await ledger.load()
    return ledger
