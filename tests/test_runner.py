"""Tests for the shared event loop used by the Streamlit sessions."""

import threading

import pytest

from conftest import SlowStorage, seed_records
from streamshare.orchestrator import HouseholdLedger
from streamshare.runner import AsyncRunner
from streamshare.services.storage import PersistenceError


@pytest.fixture
def runner():
    runner = AsyncRunner(name="streamshare-test-loop")
    yield runner
    runner.stop()


async def _answer():
    return 42


async def _fail():
    raise PersistenceError("insert failed")


class TestAsyncRunner:
    """Tests for AsyncRunner."""

    def test_returns_result(self, runner):
        """Test the coroutine's value comes back to the caller."""
        assert runner.run(_answer()) == 42

    def test_exception_reaches_caller(self, runner):
        """Test errors raised on the loop surface in the calling thread."""
        with pytest.raises(PersistenceError, match="insert failed"):
            runner.run(_fail())

    def test_stopped_runner_refuses_work(self):
        """Test nothing is scheduled once the loop is gone."""
        runner = AsyncRunner()
        runner.stop()
        runner.stop()

        assert not runner.running
        with pytest.raises(RuntimeError):
            runner.run(_answer())

    def test_sessions_on_two_threads_share_one_ledger(self, runner):
        """Test concurrent edits of one service from two threads both finish."""
        members, services, payments = seed_records()
        storage = SlowStorage(members=members, services=services, payments=payments)
        ledger = HouseholdLedger(storage)
        runner.run(ledger.load())

        errors = []

        def session(member_id):
            try:
                runner.run(ledger.toggle_member_in_service("s-netflix", member_id))
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=session, args=("m-carol",)),
            threading.Thread(target=session, args=("m-bob",)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert [thread.is_alive() for thread in threads] == [False, False]
        assert errors == []
        assert sorted(ledger.snapshot.find_service("s-netflix").member_ids) == ["m-alice", "m-carol"]
        assert len(storage.updates) == 2
        assert len(ledger.locks) == 0
