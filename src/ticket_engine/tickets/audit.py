"""Audit chain — append and verify the per-ticket operation log."""

import hashlib
import hmac as hmac_mod
import json
from datetime import datetime
from typing import Any

from ticket_engine.common.config import TicketEngineSettings
from ticket_engine.common.models import ensure_utc, utcnow
from ticket_engine.tickets.models import TicketAuditEventModel, TicketModel


class AuditChain:
    """Immutable, hash-chained operation log per ticket.

    The chain lives on ``TicketModel.audit_trail``; appending only adds a
    row, so it is written in the same transaction as the operation it
    describes.
    """

    def __init__(self, settings: TicketEngineSettings):
        self.settings = settings

    # ── Write ──

    def append(
        self,
        ticket: TicketModel,
        actor: str,
        action: str,
        note: str | None = None,
        at: datetime | None = None,
    ) -> TicketAuditEventModel:
        """Append a new entry to the ticket's audit chain."""
        at = at or utcnow()
        head = ticket.audit_trail[-1] if ticket.audit_trail else None
        prev_hash = head.event_hash if head else None
        seq = head.seq + 1 if head else 0

        event_hash = self._compute_event_hash(
            ticket.id, seq, at, actor, action, note, prev_hash,
        )
        entry = TicketAuditEventModel(
            ticket_id=ticket.id,
            seq=seq,
            at=at,
            actor=actor,
            action=action,
            note=note,
            prev_hash=prev_hash,
            event_hash=event_hash,
            signature=self._sign(event_hash),
        )
        ticket.audit_trail.append(entry)
        return entry

    # ── Verify ──

    def verify(self, ticket: TicketModel) -> dict[str, Any]:
        """Walk the chain oldest→newest, verify linkage, hashes and signatures."""
        entries = list(ticket.audit_trail)
        prev_hash = None
        for index, entry in enumerate(entries):
            expected_hash = self._compute_event_hash(
                ticket.id, entry.seq, entry.at, entry.actor,
                entry.action, entry.note, entry.prev_hash,
            )
            if (
                entry.seq != index
                or entry.prev_hash != prev_hash
                or entry.event_hash != expected_hash
                or not self._verify_signature(entry.event_hash, entry.signature)
            ):
                return {
                    "valid": False,
                    "events_checked": index,
                    "break_at": entry.id,
                }
            prev_hash = entry.event_hash

        return {"valid": True, "events_checked": len(entries), "break_at": None}

    # ── Internal helpers ──

    @staticmethod
    def _compute_event_hash(
        ticket_id: str,
        seq: int,
        at: datetime,
        actor: str,
        action: str,
        note: str | None,
        prev_hash: str | None,
    ) -> str:
        """SHA-256 of canonical JSON of the entry fields."""
        canonical = json.dumps(
            {
                "ticket_id": ticket_id,
                "seq": seq,
                "at": ensure_utc(at).isoformat(),
                "actor": actor,
                "action": action,
                "note": note,
                "prev_hash": prev_hash,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    def _sign(self, event_hash: str) -> str:
        """HMAC-SHA256 of event_hash with the current HMAC key."""
        return hmac_mod.new(
            self.settings.current_hmac_key.encode(),
            event_hash.encode(),
            hashlib.sha256,
        ).hexdigest()

    def _verify_signature(self, event_hash: str, signature: str) -> bool:
        """Verify signature against all keys in the keyring."""
        for _version, key in self.settings.hmac_keyring.items():
            expected = hmac_mod.new(
                key.encode(), event_hash.encode(), hashlib.sha256,
            ).hexdigest()
            if hmac_mod.compare_digest(expected, signature):
                return True
        return False
