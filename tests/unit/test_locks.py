"""Tests for the keyed lock table used by the check-in coordinator."""

import asyncio

import pytest

from ticket_engine.checkin.locks import KeyedLockTable
from ticket_engine.common.exceptions import BusyError


class TestKeyedLockTable:
    async def test_second_holder_times_out_busy(self):
        locks = KeyedLockTable(timeout=0.05)
        async with locks.hold("CP-T-AAAAAA"):
            assert locks.is_locked("CP-T-AAAAAA")
            with pytest.raises(BusyError) as exc_info:
                async with locks.hold("CP-T-AAAAAA"):
                    pass
        assert exc_info.value.retryable is True
        assert exc_info.value.code == "BUSY"

    async def test_different_keys_do_not_block(self):
        locks = KeyedLockTable(timeout=0.05)
        async with locks.hold("CP-T-AAAAAA"):
            async with locks.hold("CP-T-BBBBBB"):
                assert locks.is_locked("CP-T-AAAAAA")
                assert locks.is_locked("CP-T-BBBBBB")

    async def test_entries_removed_after_release(self):
        locks = KeyedLockTable()
        async with locks.hold("k1"):
            assert len(locks) == 1
        assert len(locks) == 0
        assert not locks.is_locked("k1")

    async def test_entry_removed_after_busy_timeout(self):
        locks = KeyedLockTable(timeout=0.01)
        async with locks.hold("k1"):
            with pytest.raises(BusyError):
                async with locks.hold("k1"):
                    pass
            assert len(locks) == 1
        assert len(locks) == 0

    async def test_released_when_body_raises(self):
        locks = KeyedLockTable(timeout=0.05)
        with pytest.raises(RuntimeError):
            async with locks.hold("k1"):
                raise RuntimeError("boom")
        async with locks.hold("k1"):
            pass

    async def test_waiters_run_one_at_a_time(self):
        locks = KeyedLockTable(timeout=1.0)
        inside = 0
        peak = 0

        async def worker():
            nonlocal inside, peak
            async with locks.hold("k1"):
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(worker() for _ in range(5)))
        assert peak == 1
        assert len(locks) == 0

    async def test_per_call_timeout_override(self):
        locks = KeyedLockTable(timeout=10.0)
        async with locks.hold("k1"):
            with pytest.raises(BusyError):
                async with locks.hold("k1", timeout=0.01):
                    pass
