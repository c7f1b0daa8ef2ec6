"""End-to-end gate scenarios: purchase, scan, cancel and refund retry."""

from ticket_engine.common.exceptions import GatewayError


class FlakyGateway:
    """Declines the first refund, then delegates."""

    def __init__(self, inner):
        self.inner = inner
        self.failures_left = 1

    async def refund(self, payment_intent_id, amount_cents, idempotency_key):
        if self.failures_left:
            self.failures_left -= 1
            raise GatewayError("processing_error")
        return await self.inner.refund(payment_intent_id, amount_cents, idempotency_key)


class TestGateScenarios:
    async def test_happy_path(self, client, purchase, admin_headers):
        ticket = await purchase()

        first = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"], "scannedBy": "gate-1"})
        assert first.status_code == 200
        assert first.json()["ticket"]["status"] == "used"

        second = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"], "scannedBy": "gate-2"})
        assert second.status_code == 400
        assert second.json()["outcome"] == "duplicate"

        events = (await client.get("/tickets/admin/scan-events", headers=admin_headers)).json()
        assert [e["outcome"] for e in events] == ["duplicate", "accepted"]

    async def test_cancel_before_use(self, client, purchase):
        ticket = await purchase()
        cancel = await client.put(f"/tickets/{ticket['id']}/cancel", json={"cancelledBy": "user"})
        assert cancel.json()["status"] == "cancelled"
        assert cancel.json()["paymentStatus"] == "refunded"

        scan = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"]})
        assert scan.status_code == 400
        assert scan.json()["outcome"] == "rejected"

        count = await client.get("/tickets/user/user-1/count")
        assert count.json() == {"count": 0}

    async def test_unknown_code(self, client):
        resp = await client.post("/tickets/scan", json={"ticketCode": "CP-T-BOGUS"})
        assert resp.status_code == 404
        assert resp.json()["valid"] is False

    async def test_refund_failure_then_retry(self, client, purchase):
        from ticket_engine.deps import get_lifecycle_service

        ticket = await purchase()
        svc = get_lifecycle_service()
        svc.gateway = FlakyGateway(svc.gateway)

        failed = await client.put(f"/tickets/{ticket['id']}/cancel")
        assert failed.status_code == 502
        assert (await client.get(f"/tickets/id/{ticket['id']}")).json()["status"] == "confirmed"

        retried = await client.put(f"/tickets/{ticket['id']}/cancel")
        assert retried.status_code == 200
        assert retried.json()["status"] == "cancelled"
        assert retried.json()["paymentStatus"] == "refunded"
        assert [h["status"] for h in retried.json()["history"]] == ["confirmed", "cancelled"]


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0", "service": "ticket-engine"}
