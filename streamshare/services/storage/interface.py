"""
Abstract Storage Interface

The remote store is an external collaborator: the core treats it as a
request/response API returning full snapshots. Defining it as an
abstract interface lets us:
1. Swap Supabase for Google Sheets (or anything else)
2. Use in-memory storage for tests and demo mode
3. Keep allocation and orchestration decoupled from the backend

The interface covers exactly the operations the orchestrator needs:
list/insert/delete on all three resources, plus the participant-list
update on services.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from streamshare.log import get_logger
from streamshare.models.household import Member, Payment, Service, SkippedRow


logger = get_logger(__name__)


class HouseholdStorageInterface(ABC):
    """
    Abstract interface for the members/services/payments store.

    Any storage implementation must implement these methods.
    Implementations assign ids and timestamps, and raise
    PersistenceError (or a subclass) for any backend failure.
    """

    def __init__(self):
        self._skipped_rows: list[SkippedRow] = []

    def skip_row(self, table: str, row_id: Optional[str], error: Exception) -> None:
        """Leave a row that cannot be translated out of a listing."""
        logger.warning("malformed_row_skipped", table=table, row_id=row_id, error=str(error))
        self._skipped_rows.append(
            SkippedRow(table=table, row_id=None if row_id is None else str(row_id), reason=str(error))
        )

    def drain_skipped_rows(self) -> list[SkippedRow]:
        """Rows skipped by listings since the last call, oldest first."""
        skipped, self._skipped_rows = self._skipped_rows, []
        return skipped

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_members(self) -> list[Member]:
        """
        List all members, oldest first (by created_at).

        Raises:
            PersistenceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def insert_member(self, name: str) -> Member:
        """
        Insert a member.

        Args:
            name: Member display name (already validated)

        Returns:
            The stored member, with store-assigned id and created_at

        Raises:
            PersistenceError: If the insert fails
        """
        pass

    @abstractmethod
    async def delete_member(self, member_id: str) -> None:
        """
        Delete a member by id.

        The store does not clean up service participant lists;
        the orchestrator does that explicitly.

        Raises:
            PersistenceError: If the delete fails
        """
        pass

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_services(self) -> list[Service]:
        """
        List all services, oldest first (by created_at).

        Raises:
            PersistenceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def insert_service(self, name: str, cost: Decimal) -> Service:
        """
        Insert a service with an empty participant list.

        Args:
            name: Service name (already validated)
            cost: Monthly cost (already validated, > 0)

        Returns:
            The stored service

        Raises:
            PersistenceError: If the insert fails
        """
        pass

    @abstractmethod
    async def delete_service(self, service_id: str) -> None:
        """
        Delete a service by id. Payments are not affected.

        Raises:
            PersistenceError: If the delete fails
        """
        pass

    @abstractmethod
    async def update_service_members(
        self,
        service_id: str,
        member_ids: list[str],
    ) -> None:
        """
        Replace a service's full participant list.

        Args:
            service_id: Service to update
            member_ids: The complete new participant list

        Raises:
            NotFoundError: If the service does not exist
            PersistenceError: If the update fails
        """
        pass

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_payments(self) -> list[Payment]:
        """
        List all payments, newest first.

        Raises:
            PersistenceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def insert_payment(
        self,
        member_id: str,
        month: str,
        date: str,
    ) -> Payment:
        """
        Record a payment.

        Args:
            member_id: Member who paid
            month: Month label the payment settles
            date: Formatted real-world date of recording

        Returns:
            The stored payment

        Raises:
            PersistenceError: If the insert fails
        """
        pass

    @abstractmethod
    async def delete_payment(self, payment_id: str) -> None:
        """
        Delete a payment by id (unmarking a member as paid).

        Raises:
            PersistenceError: If the delete fails
        """
        pass


class PersistenceError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(PersistenceError):
    """Entity not found in storage."""
    pass


class StoreConnectionError(PersistenceError):
    """Could not connect to storage backend."""
    pass
