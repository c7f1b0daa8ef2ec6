"""Tests for Stripe webhook signature verification and event parsing."""

import hashlib
import hmac
import json
import time

from ticket_engine.payments.webhook import (
    CHARGE_REFUNDED,
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    parse_payment_event,
    verify_stripe_signature,
)

SECRET = "whsec_test_secret"


def _sign(payload: bytes, secret: str = SECRET, timestamp: int | None = None) -> str:
    ts = str(int(time.time()) if timestamp is None else timestamp)
    sig = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


class TestVerifyStripeSignature:
    def test_valid_signature(self):
        payload = b'{"type": "charge.refunded"}'
        assert verify_stripe_signature(payload, _sign(payload), SECRET) is True

    def test_wrong_secret(self):
        payload = b'{"type": "charge.refunded"}'
        assert verify_stripe_signature(payload, _sign(payload, "other"), SECRET) is False

    def test_tampered_payload(self):
        payload = b'{"type": "charge.refunded"}'
        header = _sign(payload)
        assert verify_stripe_signature(b'{"type": "other"}', header, SECRET) is False

    def test_stale_timestamp_rejected(self):
        payload = b"{}"
        header = _sign(payload, timestamp=1_000_000)
        assert verify_stripe_signature(payload, header, SECRET, tolerance=300, now=1_000_301) is False
        assert verify_stripe_signature(payload, header, SECRET, tolerance=300, now=1_000_299) is True

    def test_any_v1_signature_may_match(self):
        payload = b"{}"
        header = _sign(payload)
        ts, good = header.split(",")
        assert verify_stripe_signature(payload, f"{ts},v1=deadbeef,{good}", SECRET) is True

    def test_malformed_headers(self):
        payload = b"{}"
        assert verify_stripe_signature(payload, "", SECRET) is False
        assert verify_stripe_signature(payload, "garbage", SECRET) is False
        assert verify_stripe_signature(payload, "t=abc,v1=00", SECRET) is False
        assert verify_stripe_signature(payload, _sign(payload), "") is False


class TestParsePaymentEvent:
    def test_charge_refunded(self):
        event = parse_payment_event({
            "id": "evt_1",
            "type": CHARGE_REFUNDED,
            "data": {"object": {
                "id": "ch_1",
                "payment_intent": "pi_1",
                "amount_refunded": 4500,
                "metadata": {"ticketId": "t-1"},
                "refunds": {"data": [{"id": "re_1"}]},
            }},
        })
        assert event.event_id == "evt_1"
        assert event.ticket_id == "t-1"
        assert event.payment_intent_id == "pi_1"
        assert event.refund_id == "re_1"
        assert event.amount_cents == 4500

    def test_payment_intent_events_use_object_id(self):
        for event_type in (PAYMENT_SUCCEEDED, PAYMENT_FAILED):
            event = parse_payment_event({
                "id": "evt_2",
                "type": event_type,
                "data": {"object": {"id": "pi_2", "amount": 900, "metadata": {"ticket_id": "t-2"}}},
            })
            assert event.event_type == event_type
            assert event.payment_intent_id == "pi_2"
            assert event.ticket_id == "t-2"
            assert event.refund_id == ""

    def test_intent_only_reference(self):
        event = parse_payment_event({
            "type": CHARGE_REFUNDED,
            "data": {"object": {"payment_intent": "pi_3"}},
        })
        assert event.ticket_id == ""
        assert event.payment_intent_id == "pi_3"

    def test_unhandled_type_ignored(self):
        assert parse_payment_event({"type": "customer.created", "data": {"object": {}}}) is None

    def test_no_reference_ignored(self):
        assert parse_payment_event({"type": CHARGE_REFUNDED, "data": {"object": {}}}) is None

    def test_round_trip_through_json(self):
        body = json.dumps({
            "type": PAYMENT_FAILED,
            "data": {"object": {"id": "pi_4", "metadata": None}},
        })
        event = parse_payment_event(json.loads(body))
        assert event.payment_intent_id == "pi_4"
