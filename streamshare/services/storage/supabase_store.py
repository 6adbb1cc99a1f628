"""
Supabase Storage Implementation

The household data lives in three Supabase (PostgREST) tables:
members, services and payments. supabase-py is synchronous; the calls
are short single-row writes or full-table reads, so they run inline
inside the async interface methods.

RETRIES:
- Reads (full-table selects) and client creation are retried with
  exponential backoff; they are idempotent.
- Writes are never retried. A failed write is terminal for that
  attempt and surfaces to the user, who may retry it.
"""

from decimal import Decimal
from typing import Any, Callable, Optional

from supabase import Client, create_client
from tenacity import retry, stop_after_attempt, wait_exponential

from streamshare.config import get_settings
from streamshare.config.settings import SupabaseSettings
from streamshare.models.household import Member, Payment, Service
from streamshare.services.storage.interface import (
    HouseholdStorageInterface,
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
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


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the client lazily and resolves configured table names.
    """

    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        client: Optional[Client] = None,
    ):
        self._settings = settings or get_settings().supabase
        self._client = client

    @property
    def settings(self) -> SupabaseSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> Client:
        """Create the Supabase client on first use."""
        if self._client is None:
            try:
                self._client = create_client(self._settings.url, self._settings.key)
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Supabase: {e}") from e
        return self._client

    def table(self, name: str):
        """Start a PostgREST query on a table."""
        return self.connect().table(name)


class SupabaseHouseholdStorage(HouseholdStorageInterface):
    """
    Supabase implementation of household storage.

    Rows are translated with the shared record functions; ids come
    back from PostgREST and are kept as opaque strings.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        super().__init__()
        self._client = client or SupabaseClient()
        self._tables = self._client.settings

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _select_all(self, table: str, order_by: str, desc: bool = False) -> list[dict]:
        response = (
            self._client.table(table)
            .select("*")
            .order(order_by, desc=desc)
            .execute()
        )
        return response.data or []

    def _read(
        self,
        table: str,
        order_by: str,
        translate: Callable[[dict], Any],
        desc: bool = False,
    ) -> list:
        try:
            rows = self._select_all(table, order_by, desc=desc)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to list {table}: {e}") from e

        items = []
        for row in rows:
            try:
                items.append(translate(row))
            except Exception as e:
                self.skip_row(table, row.get("id"), e)
        return items

    def _insert(self, table: str, record: dict) -> dict:
        try:
            response = self._client.table(table).insert(record).execute()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to insert into {table}: {e}") from e

        if not response.data:
            raise PersistenceError(f"Insert into {table} returned no row")
        return response.data[0]

    def _delete(self, table: str, row_id: str) -> None:
        try:
            self._client.table(table).delete().eq("id", row_id).execute()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to delete from {table}: {e}") from e

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def list_members(self) -> list[Member]:
        return self._read(self._tables.members_table, "created_at", member_from_record)

    async def insert_member(self, name: str) -> Member:
        row = self._insert(self._tables.members_table, new_member_record(name))
        return member_from_record(row)

    async def delete_member(self, member_id: str) -> None:
        self._delete(self._tables.members_table, member_id)

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    async def list_services(self) -> list[Service]:
        return self._read(self._tables.services_table, "created_at", service_from_record)

    async def insert_service(self, name: str, cost: Decimal) -> Service:
        row = self._insert(self._tables.services_table, new_service_record(name, cost))
        return service_from_record(row)

    async def delete_service(self, service_id: str) -> None:
        self._delete(self._tables.services_table, service_id)

    async def update_service_members(
        self,
        service_id: str,
        member_ids: list[str],
    ) -> None:
        try:
            response = (
                self._client.table(self._tables.services_table)
                .update(service_members_to_record(member_ids))
                .eq("id", service_id)
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update service {service_id}: {e}") from e

        if not response.data:
            raise NotFoundError(f"Service not found: {service_id}")

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def list_payments(self) -> list[Payment]:
        return self._read(
            self._tables.payments_table,
            "date",
            payment_from_record,
            desc=True,
        )

    async def insert_payment(
        self,
        member_id: str,
        month: str,
        date: str,
    ) -> Payment:
        row = self._insert(
            self._tables.payments_table,
            new_payment_record(member_id, month, date),
        )
        return payment_from_record(row)

    async def delete_payment(self, payment_id: str) -> None:
        self._delete(self._tables.payments_table, payment_id)
