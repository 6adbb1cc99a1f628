"""
Local State Primitives

Two building blocks the orchestrator uses for every mutation:

- optimistic_update: swap a new version of one entity into the
  snapshot, let the caller persist it, and put the previous version
  back if the block does not complete. Only that entity is restored,
  so changes made to other entities while the request was in flight
  survive.
- EntityLocks: one asyncio.Lock per entity key, so two mutations on
  the same entity run one after the other instead of racing. A lock
  lives only while someone holds or waits for it.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable, TypeVar

from pydantic import BaseModel

from streamshare.models.household import HouseholdSnapshot


EntityT = TypeVar("EntityT", bound=BaseModel)


def _swap(snapshot: HouseholdSnapshot, collection: str, entity: BaseModel) -> None:
    items = getattr(snapshot, collection)
    setattr(
        snapshot,
        collection,
        [entity if item.id == entity.id else item for item in items],
    )


@asynccontextmanager
async def optimistic_update(
    snapshot: HouseholdSnapshot,
    collection: str,
    updated: EntityT,
) -> AsyncIterator[EntityT]:
    """
    Apply `updated` to the snapshot now; revert it if the block raises.

    Usage:
        async with optimistic_update(snapshot, "services", new_service) as previous:
            await storage.update_service_members(new_service.id, new_service.member_ids)

    Args:
        snapshot: The snapshot to mutate
        collection: Snapshot attribute holding the entity ("services", ...)
        updated: New version of the entity, matched by id

    Yields:
        The version that was replaced

    Raises:
        KeyError: If no entity with that id is in the collection
        PersistenceError: Re-raised after the checkpoint is restored;
            so is anything else the block raises, cancellation included
    """
    previous = next(
        (item for item in getattr(snapshot, collection) if item.id == updated.id),
        None,
    )
    if previous is None:
        raise KeyError(f"No {collection} entry with id {updated.id}")

    _swap(snapshot, collection, updated)
    try:
        yield previous
    except BaseException:
        _swap(snapshot, collection, previous)
        raise


class EntityLocks:
    """
    Registry of per-entity locks.

    Keys are tuples such as ("service", service_id). A lock is created
    when the first task asks for it and dropped when the last task
    holding or waiting for it lets go.
    """

    def __init__(self):
        self._locks: dict[tuple, asyncio.Lock] = {}
        self._users: dict[tuple, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, *key: Hashable) -> AsyncIterator[None]:
        """Hold the lock guarding one entity for the duration of the block."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        lock = self._locks[key]
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def is_busy(self, *key: Hashable) -> bool:
        """Is a mutation on this entity in flight?"""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()
