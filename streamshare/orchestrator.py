"""
Mutation Orchestrator for StreamShare

The orchestrator is the only writer of the household snapshot. Every
operation follows the same shape:
1. Validate input (ValidationError, nothing sent)
2. Issue one persistence request
3. On success, merge the store-confirmed record into the snapshot
4. On failure, raise; additions simply do not apply, optimistic
   updates are reverted to their checkpoint

Mutations on the same entity are serialized through per-entity locks.
Lock order is always member before service.
"""

from datetime import datetime
from typing import Callable, Hashable, Optional

from streamshare.config import get_settings
from streamshare.log import configure_logging, get_logger
from streamshare.models.household import (
    HouseholdSnapshot,
    Member,
    MonthRef,
    Service,
)
from streamshare.models.period import MonthKey, format_payment_date, parse_month_label
from streamshare.services.storage import (
    GoogleSheetsHouseholdStorage,
    HouseholdStorageInterface,
    InMemoryHouseholdStorage,
    PersistenceError,
    SupabaseHouseholdStorage,
)
from streamshare.state import EntityLocks, optimistic_update
from streamshare.validation import (
    ValidationError,
    validate_member_input,
    validate_service_input,
)


class CascadeError(PersistenceError):
    """
    Removing a member could not update every service they were in.

    The member is kept. Services listed in `failures` still include
    the member; all other affected services were updated.
    """

    def __init__(self, member_id: str, failures: dict[str, str]):
        self.member_id = member_id
        self.failures = failures
        names = ", ".join(sorted(failures))
        super().__init__(
            f"Could not remove member {member_id} from services: {names}"
        )


def _month_lock_key(target_month: MonthRef) -> Hashable:
    """Spellings of the same month share one payment lock."""
    if isinstance(target_month, MonthKey):
        return target_month
    return parse_month_label(target_month) or target_month


class HouseholdLedger:
    """
    Owns the household snapshot and applies mutations to it.

    Args:
        storage: Backend implementing HouseholdStorageInterface
        clock: Source of the real-world "now" stamped on new payments
    """

    def __init__(
        self,
        storage: HouseholdStorageInterface,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._storage = storage
        self._clock = clock
        self._snapshot = HouseholdSnapshot()
        self._locks = EntityLocks()
        self._logger = get_logger(__name__)

    @property
    def snapshot(self) -> HouseholdSnapshot:
        """The current snapshot. Read it; do not mutate it."""
        return self._snapshot

    @property
    def locks(self) -> EntityLocks:
        return self._locks

    def _failed(self, operation: str, error: Exception, **context) -> None:
        self._logger.error(
            "persistence_failed",
            operation=operation,
            error=str(error),
            **context,
        )

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self) -> HouseholdSnapshot:
        """
        Fetch all three tables and replace the snapshot.

        All or nothing: if any fetch fails the previous snapshot stays.
        Rows the store holds but that cannot be read are left out and
        listed on the snapshot's `skipped_rows`.
        """
        self._storage.drain_skipped_rows()
        try:
            members = await self._storage.list_members()
            services = await self._storage.list_services()
            payments = await self._storage.list_payments()
        except PersistenceError as e:
            self._failed("load", e)
            raise

        skipped = self._storage.drain_skipped_rows()
        self._snapshot = HouseholdSnapshot(
            members=members,
            services=services,
            payments=payments,
            skipped_rows=skipped,
        )
        if skipped:
            self._logger.warning("rows_skipped_on_load", count=len(skipped))
        self._logger.info(
            "snapshot_loaded",
            members=len(members),
            services=len(services),
            payments=len(payments),
            skipped=len(skipped),
        )
        return self._snapshot

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    async def add_service(self, name, cost) -> Service:
        """
        Create a service with no participants.

        Raises:
            ValidationError: If name or cost is missing or cost is not positive
            PersistenceError: If the insert fails (nothing is added)
        """
        name, cost = validate_service_input(name, cost)

        try:
            service = await self._storage.insert_service(name, cost)
        except PersistenceError as e:
            self._failed("add_service", e, name=name)
            raise

        self._snapshot.services = [*self._snapshot.services, service]
        self._logger.info("service_added", service_id=service.id, name=service.name, cost=str(service.cost))
        return service

    async def remove_service(self, service_id: str) -> None:
        """
        Delete a service. Payments are not touched.

        Raises:
            PersistenceError: If the delete fails (the service stays)
        """
        async with self._locks.hold("service", service_id):
            try:
                await self._storage.delete_service(service_id)
            except PersistenceError as e:
                self._failed("remove_service", e, service_id=service_id)
                raise

            self._snapshot.services = [
                s for s in self._snapshot.services if s.id != service_id
            ]
            self._logger.info("service_removed", service_id=service_id)

    async def toggle_member_in_service(self, service_id: str, member_id: str) -> Service:
        """
        Add the member to the service, or remove them if already in it.

        Optimistic: the snapshot changes before the store confirms and
        only this service is reverted if the update fails.

        Returns:
            The service as it now stands

        Raises:
            ValidationError: Unknown service, or adding an unknown member
            PersistenceError: If the update fails (after reverting)
        """
        async with self._locks.hold("member", member_id), self._locks.hold("service", service_id):
            service = self._snapshot.find_service(service_id)
            if service is None:
                raise ValidationError("service_id", f"Unknown service: {service_id}")
            if not service.has_member(member_id) and self._snapshot.find_member(member_id) is None:
                raise ValidationError("member_id", f"Unknown member: {member_id}")

            updated = service.with_member_toggled(member_id)
            try:
                async with optimistic_update(self._snapshot, "services", updated):
                    await self._storage.update_service_members(updated.id, updated.member_ids)
            except PersistenceError as e:
                self._failed("toggle_member_in_service", e, service_id=service_id, member_id=member_id)
                self._logger.warning("service_toggle_reverted", service_id=service_id)
                raise

            self._logger.info(
                "service_members_updated",
                service_id=service_id,
                member_id=member_id,
                joined=updated.has_member(member_id),
            )
            return updated

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def add_member(self, name) -> Member:
        """
        Create a member.

        Raises:
            ValidationError: If the name is empty
            PersistenceError: If the insert fails (nothing is added)
        """
        name = validate_member_input(name)

        try:
            member = await self._storage.insert_member(name)
        except PersistenceError as e:
            self._failed("add_member", e, name=name)
            raise

        self._snapshot.members = [*self._snapshot.members, member]
        self._logger.info("member_added", member_id=member.id, name=member.name)
        return member

    async def remove_member(self, member_id: str) -> None:
        """
        Delete a member and strip them from every service.

        Each affected service's participant list is persisted first.
        Only when all of them succeed is the member deleted. Services
        that were updated stay updated either way.

        Raises:
            ValidationError: If the member is unknown
            CascadeError: If some services could not be updated (member kept)
            PersistenceError: If the member delete fails (member kept)
        """
        async with self._locks.hold("member", member_id):
            if self._snapshot.find_member(member_id) is None:
                raise ValidationError("member_id", f"Unknown member: {member_id}")

            failures: dict[str, str] = {}
            for service in self._snapshot.services_with_member(member_id):
                async with self._locks.hold("service", service.id):
                    current = self._snapshot.find_service(service.id)
                    if current is None or not current.has_member(member_id):
                        continue

                    stripped = current.without_member(member_id)
                    try:
                        await self._storage.update_service_members(stripped.id, stripped.member_ids)
                    except PersistenceError as e:
                        self._failed("remove_member.cascade", e, member_id=member_id, service_id=service.id)
                        failures[service.id] = str(e)
                        continue

                    self._snapshot.replace_service(stripped)

            if failures:
                raise CascadeError(member_id, failures)

            try:
                await self._storage.delete_member(member_id)
            except PersistenceError as e:
                self._failed("remove_member", e, member_id=member_id)
                raise

            self._snapshot.members = [
                m for m in self._snapshot.members if m.id != member_id
            ]
            self._logger.info("member_removed", member_id=member_id)

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def toggle_payment(self, member_id: str, target_month: MonthRef) -> bool:
        """
        Mark the member paid for the month, or unmark them if already paid.

        A new payment's `date` is the real-world date of the action,
        never the target month. Unmarking deletes the payment; the
        snapshot changes only after the store confirms.

        Returns:
            True if the member is now paid for the month

        Raises:
            ValidationError: If the member is unknown
            PersistenceError: If the insert/delete fails (state unchanged)
        """
        label = target_month.label if isinstance(target_month, MonthKey) else target_month
        async with self._locks.hold("payment", member_id, _month_lock_key(target_month)):
            existing = self._snapshot.find_payment(member_id, target_month)

            if existing is not None:
                try:
                    await self._storage.delete_payment(existing.id)
                except PersistenceError as e:
                    self._failed("toggle_payment", e, member_id=member_id, month=label)
                    raise

                self._snapshot.payments = [
                    p for p in self._snapshot.payments if p.id != existing.id
                ]
                self._logger.info("payment_removed", member_id=member_id, month=label)
                return False

            if self._snapshot.find_member(member_id) is None:
                raise ValidationError("member_id", f"Unknown member: {member_id}")

            try:
                payment = await self._storage.insert_payment(
                    member_id=member_id,
                    month=label,
                    date=format_payment_date(self._clock()),
                )
            except PersistenceError as e:
                self._failed("toggle_payment", e, member_id=member_id, month=label)
                raise

            self._snapshot.payments = [payment, *self._snapshot.payments]
            self._logger.info("payment_recorded", member_id=member_id, month=label, date=payment.date)
            return True


def create_storage(backend: Optional[str] = None) -> HouseholdStorageInterface:
    """
    Build the configured storage backend.

    Args:
        backend: "supabase", "google_sheets" or "memory";
                 defaults to the STORAGE_BACKEND setting
    """
    backend = backend or get_settings().app.storage_backend

    if backend == "supabase":
        return SupabaseHouseholdStorage()
    if backend == "google_sheets":
        return GoogleSheetsHouseholdStorage()
    if backend == "memory":
        return InMemoryHouseholdStorage()
    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    backend: Optional[str] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> tuple[HouseholdLedger, str]:
    """
    Factory function to create the ledger with its storage.

    Falls back to in-memory storage (demo mode) when the configured
    backend cannot be built, e.g. because its settings are missing.

    Returns:
        (ledger, name_of_backend_in_use)
    """
    configure_logging()
    logger = get_logger(__name__)

    try:
        backend = backend or get_settings().app.storage_backend
        storage = create_storage(backend)
    except Exception as e:
        logger.warning("storage_not_configured", backend=backend, error=str(e))
        backend = "memory"
        storage = InMemoryHouseholdStorage()

    return HouseholdLedger(storage, clock=clock), backend
