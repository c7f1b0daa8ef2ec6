"""Tests for the transaction ledger."""

from ticket_engine.payments.models import CHARGE, REFUND
from ticket_engine.payments.transactions import TransactionLedger


class TestTransactionLedger:
    async def test_record_is_idempotent_per_type(self, db):
        ledger = TransactionLedger()
        async with db.get_session() as session:
            first = await ledger.record(session, "user-1", "t-1", REFUND, 4500, "AUD")
        async with db.get_session() as session:
            second = await ledger.record(session, "user-1", "t-1", REFUND, 4500, "AUD")
            txns = await ledger.list_for_ticket(session, "t-1")
        assert first.id == second.id
        assert len(txns) == 1

    async def test_charge_and_refund_coexist(self, db):
        ledger = TransactionLedger()
        async with db.get_session() as session:
            await ledger.record(session, "user-1", "t-1", CHARGE, 4500, "AUD")
            await ledger.record(session, "user-1", "t-1", REFUND, 4500, "AUD")
            txns = await ledger.list_for_ticket(session, "t-1")
        assert sorted(t.type for t in txns) == [CHARGE, REFUND]

    async def test_list_for_user(self, db):
        ledger = TransactionLedger()
        async with db.get_session() as session:
            await ledger.record(session, "user-1", "t-1", CHARGE, 4500, "AUD")
            await ledger.record(session, "user-1", "t-2", CHARGE, 900, "AUD")
            await ledger.record(session, "user-2", "t-3", CHARGE, 100, "AUD")
        async with db.get_session() as session:
            txns = await ledger.list_for_user(session, "user-1")
        assert {t.ticket_id for t in txns} == {"t-1", "t-2"}
