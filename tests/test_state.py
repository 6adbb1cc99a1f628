"""Tests for the optimistic-update primitive and entity locks."""

import asyncio
import pytest
from decimal import Decimal

from streamshare.models.household import HouseholdSnapshot, Service
from streamshare.services.storage import PersistenceError
from streamshare.state import EntityLocks, optimistic_update


def _snapshot():
    return HouseholdSnapshot(services=[
        Service(id="s-1", name="Netflix", cost=Decimal("15"), member_ids=["a"]),
        Service(id="s-2", name="Spotify", cost=Decimal("10"), member_ids=[]),
    ])


class TestOptimisticUpdate:
    """Tests for optimistic_update."""

    @pytest.mark.asyncio
    async def test_applied_immediately(self):
        """Test the new version is visible inside the block."""
        snapshot = _snapshot()
        updated = snapshot.find_service("s-1").with_member_toggled("b")

        async with optimistic_update(snapshot, "services", updated) as previous:
            assert snapshot.find_service("s-1").member_ids == ["a", "b"]
            assert previous.member_ids == ["a"]

        assert snapshot.find_service("s-1").member_ids == ["a", "b"]

    @pytest.mark.asyncio
    async def test_reverted_on_failure(self):
        """Test the checkpoint restored when persistence fails."""
        snapshot = _snapshot()
        updated = snapshot.find_service("s-1").with_member_toggled("b")

        with pytest.raises(PersistenceError):
            async with optimistic_update(snapshot, "services", updated):
                raise PersistenceError("boom")

        assert snapshot.find_service("s-1").member_ids == ["a"]

    @pytest.mark.asyncio
    async def test_revert_spares_other_entities(self):
        """Test that only the failed entity is rolled back."""
        snapshot = _snapshot()
        updated = snapshot.find_service("s-1").with_member_toggled("b")

        with pytest.raises(PersistenceError):
            async with optimistic_update(snapshot, "services", updated):
                snapshot.replace_service(snapshot.find_service("s-2").with_member_toggled("c"))
                raise PersistenceError("boom")

        assert snapshot.find_service("s-1").member_ids == ["a"]
        assert snapshot.find_service("s-2").member_ids == ["c"]

    @pytest.mark.asyncio
    async def test_unknown_entity(self):
        """Test updating an entity that is not in the snapshot."""
        snapshot = _snapshot()
        ghost = Service(id="s-9", name="Ghost", cost=Decimal("1"))

        with pytest.raises(KeyError):
            async with optimistic_update(snapshot, "services", ghost):
                pass

    @pytest.mark.asyncio
    async def test_reverted_on_unexpected_error(self):
        """Test any exception from the block restores the checkpoint."""
        snapshot = _snapshot()
        updated = snapshot.find_service("s-1").with_member_toggled("b")

        with pytest.raises(RuntimeError):
            async with optimistic_update(snapshot, "services", updated):
                raise RuntimeError("adapter bug")

        assert snapshot.find_service("s-1").member_ids == ["a"]

    @pytest.mark.asyncio
    async def test_reverted_when_cancelled(self):
        """Test a cancelled request does not leave the change applied."""
        snapshot = _snapshot()
        updated = snapshot.find_service("s-1").with_member_toggled("b")
        started = asyncio.Event()

        async def persist():
            async with optimistic_update(snapshot, "services", updated):
                started.set()
                await asyncio.sleep(10)

        task = asyncio.ensure_future(persist())
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert snapshot.find_service("s-1").member_ids == ["a"]


class TestEntityLocks:
    """Tests for EntityLocks."""

    def test_unknown_key_not_busy(self):
        """Test keys never locked are idle."""
        assert not EntityLocks().is_busy("service", "s-1")

    @pytest.mark.asyncio
    async def test_busy_while_held(self):
        """Test is_busy reflects a held lock."""
        locks = EntityLocks()
        async with locks.hold("member", "m-1"):
            assert locks.is_busy("member", "m-1")
            assert not locks.is_busy("member", "m-2")
        assert not locks.is_busy("member", "m-1")

    @pytest.mark.asyncio
    async def test_serializes_same_key(self):
        """Test two holders of the same key do not overlap."""
        locks = EntityLocks()
        events = []

        async def worker(name):
            async with locks.hold("service", "s-1"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert events == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_other_keys_run_concurrently(self):
        """Test different entities do not wait on each other."""
        locks = EntityLocks()
        async with locks.hold("service", "s-1"):
            async with locks.hold("service", "s-2"):
                assert len(locks) == 2

    @pytest.mark.asyncio
    async def test_dropped_once_released(self):
        """Test a month of payment toggles does not leave locks behind."""
        locks = EntityLocks()

        for month in range(1, 13):
            async with locks.hold("payment", "m-1", month):
                assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_kept_while_someone_waits(self):
        """Test the lock survives its holder while another task is queued."""
        locks = EntityLocks()
        released = asyncio.Event()
        order = []

        async def first():
            async with locks.hold("service", "s-1"):
                order.append("first")
                await released.wait()

        async def second():
            async with locks.hold("service", "s-1"):
                order.append("second")
                assert locks.is_busy("service", "s-1")

        tasks = [asyncio.ensure_future(first()), asyncio.ensure_future(second())]
        await asyncio.sleep(0)
        released.set()
        await asyncio.gather(*tasks)

        assert order == ["first", "second"]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_dropped_when_waiter_cancelled(self):
        """Test a cancelled waiter does not pin the lock."""
        locks = EntityLocks()
        released = asyncio.Event()

        async def holder():
            async with locks.hold("service", "s-1"):
                await released.wait()

        async def waiter():
            async with locks.hold("service", "s-1"):
                pass

        holding = asyncio.ensure_future(holder())
        await asyncio.sleep(0)
        waiting = asyncio.ensure_future(waiter())
        await asyncio.sleep(0)
        waiting.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiting

        released.set()
        await holding
        assert len(locks) == 0
