"""Integration tests for gate check-in and scan ledger review."""

import asyncio


class TestScanEndpoint:
    async def test_happy_path(self, client, purchase):
        ticket = await purchase()
        resp = await client.post("/tickets/scan", json={
            "ticketCode": ticket["ticketCode"], "scannedBy": "gate-1",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["valid"] is True
        assert data["outcome"] == "accepted"
        assert data["ticket"]["status"] == "used"
        assert data["ticket"]["scanCount"] == 1
        assert data["ticket"]["lastScannedAt"] is not None

    async def test_duplicate_scan(self, client, purchase):
        ticket = await purchase()
        await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"]})
        resp = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"]})
        assert resp.status_code == 400
        data = resp.json()
        assert data["valid"] is False
        assert data["outcome"] == "duplicate"
        assert data["error"] == "Ticket already scanned"
        assert data["ticket"]["scanCount"] == 1

    async def test_unknown_code(self, client, admin_headers):
        resp = await client.post("/tickets/scan", json={"ticketCode": "CP-T-BOGUS"})
        assert resp.status_code == 404
        data = resp.json()
        assert data["valid"] is False
        assert data["outcome"] == "rejected"
        assert data["error"] == "Invalid ticket code"
        assert data["ticket"] is None

        events = (await client.get("/tickets/admin/scan-events", headers=admin_headers)).json()
        assert len(events) == 1
        assert events[0]["ticketId"] == "unknown"
        assert events[0]["outcome"] == "rejected"

    async def test_lowercase_code_accepted(self, client, purchase):
        ticket = await purchase()
        resp = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"].lower()})
        assert resp.status_code == 200

    async def test_empty_code(self, client):
        resp = await client.post("/tickets/scan", json={"ticketCode": "   "})
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_REQUEST"

    async def test_cancelled_ticket_rejected(self, client, purchase):
        ticket = await purchase()
        await client.put(f"/tickets/{ticket['id']}/cancel")
        resp = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"]})
        assert resp.status_code == 400
        assert resp.json()["outcome"] == "rejected"
        assert resp.json()["error"] == "Ticket is cancelled"

    async def test_busy_returns_503(self, client, purchase):
        from ticket_engine.deps import get_lock_table

        ticket = await purchase()
        locks = get_lock_table()
        locks.timeout = 0.05
        async with locks.hold(ticket["ticketCode"]):
            resp = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"]})
        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "1"
        assert resp.json() == {
            "valid": False,
            "error": "Ticket is busy, retry the scan",
            "code": "BUSY",
            "retryable": True,
        }

        resp = await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"]})
        assert resp.status_code == 200

    async def test_concurrent_scans_admit_once(self, client, purchase):
        ticket = await purchase()
        responses = await asyncio.gather(*(
            client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"], "scannedBy": f"gate-{i}"})
            for i in range(8)
        ))
        codes = sorted(r.status_code for r in responses)
        assert codes == [200] + [400] * 7

        resp = await client.get(f"/tickets/id/{ticket['id']}")
        assert resp.json()["scanCount"] == 1


class TestScanEvents:
    async def test_requires_api_key(self, client):
        resp = await client.get("/tickets/admin/scan-events", headers={"X-Ticket-Api-Key": "wrong"})
        assert resp.status_code == 403

    async def test_newest_first_with_limit(self, client, purchase, admin_headers):
        ticket = await purchase()
        await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"], "scannedBy": "gate-1"})
        await client.post("/tickets/scan", json={"ticketCode": ticket["ticketCode"], "scannedBy": "gate-2"})
        await client.post("/tickets/scan", json={"ticketCode": "CP-T-BOGUS", "scannedBy": "gate-3"})

        resp = await client.get("/tickets/admin/scan-events", headers=admin_headers)
        assert resp.status_code == 200
        events = resp.json()
        assert [e["scannedBy"] for e in events] == ["gate-3", "gate-2", "gate-1"]
        assert [e["outcome"] for e in events] == ["rejected", "duplicate", "accepted"]

        resp = await client.get("/tickets/admin/scan-events?limit=1", headers=admin_headers)
        assert len(resp.json()) == 1

    async def test_missing_api_key(self, client):
        resp = await client.get("/tickets/admin/scan-events")
        assert resp.status_code == 401
