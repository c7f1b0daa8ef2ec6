"""
GateClient SDK — sync client for Ticket-Engine.

Used by gate scanners and back-office tools to check tickets in, look
them up, cancel them and fetch wallet pass URLs.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx


@dataclass
class ClientTicket:
    """Ticket info returned by the SDK."""

    id: str
    ticket_code: str
    user_id: str
    event_id: str
    status: str
    payment_status: str = ""
    tier_name: str = ""
    quantity: int = 1
    total_price_cents: int = 0
    currency: str = ""
    priority: str = "normal"
    scan_count: int = 0
    last_scanned_at: Optional[str] = None
    wallet_passes: dict[str, str] = field(default_factory=dict)


@dataclass
class ClientCheckInResult:
    """Result of check_in() call."""

    valid: bool
    outcome: str = ""
    message: str = ""
    code: str = ""
    ticket: Optional[ClientTicket] = None

    @property
    def duplicate(self) -> bool:
        return self.outcome == "duplicate"


class GateClient:
    """
    Synchronous HTTP client for Ticket-Engine.

    Busy answers (503) from the check-in endpoint are retried with
    exponential backoff; other answers are returned as-is.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:8080",
        device_id: str = "gate",
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        max_retries: int = 3,
        retry_backoff_base: float = 0.25,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.device_id = device_id
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self._http = httpx.Client(
            base_url=self.server_url,
            timeout=timeout,
            transport=transport,
        )

    def _admin_headers(self) -> dict[str, str]:
        headers = {}
        if self.api_key:
            headers["X-Ticket-Api-Key"] = self.api_key
        return headers

    def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> tuple[int, dict[str, Any]]:
        """Central HTTP method with retry. Returns (status_code, json_body).

        Retries on timeouts, transport errors, 429 and 5xx. A status code
        of 0 means no response was received.
        """
        last_error = None
        for attempt in range(self.max_retries):
            try:
                resp = self._http.request(method, path, **kwargs)
                if resp.status_code >= 500 or resp.status_code == 429:
                    last_error = f"HTTP {resp.status_code}"
                    if attempt < self.max_retries - 1:
                        time.sleep(self.retry_backoff_base * (2 ** attempt))
                        continue
                return resp.status_code, resp.json()
            except httpx.TimeoutException:
                last_error = "timeout"
            except httpx.HTTPError as e:
                last_error = str(e)
            except json.JSONDecodeError:
                return resp.status_code, {"error": "Invalid JSON response", "code": "JSON_ERROR"}
            if attempt < self.max_retries - 1:
                time.sleep(self.retry_backoff_base * (2 ** attempt))

        return 0, {
            "error": f"All {self.max_retries} retries exhausted: {last_error}",
            "code": "CONNECTION_ERROR",
        }

    @staticmethod
    def _parse_ticket(data: dict) -> ClientTicket:
        return ClientTicket(
            id=data.get("id", ""),
            ticket_code=data.get("ticketCode", ""),
            user_id=data.get("userId", ""),
            event_id=data.get("eventId", ""),
            status=data.get("status", ""),
            payment_status=data.get("paymentStatus", ""),
            tier_name=data.get("tierName", ""),
            quantity=data.get("quantity", 1),
            total_price_cents=data.get("totalPriceCents", 0),
            currency=data.get("currency", ""),
            priority=data.get("priority", "normal"),
            scan_count=data.get("scanCount", 0),
            last_scanned_at=data.get("lastScannedAt"),
            wallet_passes=data.get("walletPasses") or {},
        )

    # ── Check-in ──

    def check_in(self, ticket_code: str) -> ClientCheckInResult:
        """Scan a ticket code on behalf of this device."""
        status, data = self._request(
            "POST", "/tickets/scan",
            json={"ticketCode": ticket_code, "scannedBy": self.device_id},
        )
        ticket = self._parse_ticket(data["ticket"]) if data.get("ticket") else None
        return ClientCheckInResult(
            valid=bool(data.get("valid", False)) and status == 200,
            outcome=data.get("outcome", ""),
            message=data.get("message") or data.get("error") or "",
            code=data.get("code", "") if status != 200 else "OK",
            ticket=ticket,
        )

    # ── Tickets ──

    def get_ticket(self, ticket_id: str) -> Optional[ClientTicket]:
        status, data = self._request("GET", f"/tickets/id/{ticket_id}")
        if status != 200:
            return None
        return self._parse_ticket(data)

    def cancel(
        self, ticket_id: str, cancelled_by: str = "user", refund: bool = True,
    ) -> dict[str, Any]:
        """Cancel a ticket. Safe to repeat after a failed or timed-out refund.

        ``refund=False`` needs the admin API key.
        """
        status, data = self._request(
            "PUT", f"/tickets/{ticket_id}/cancel",
            json={"cancelledBy": cancelled_by, "refund": refund},
            headers=self._admin_headers(),
        )
        return {"status_code": status, **data}

    def wallet_pass(self, ticket_id: str, provider: str) -> Optional[str]:
        status, data = self._request("GET", f"/tickets/{ticket_id}/wallet/{provider}")
        if status != 200:
            return None
        return data.get("url")

    def recent_scans(self, limit: int = 50) -> list[dict[str, Any]]:
        status, data = self._request(
            "GET", "/tickets/admin/scan-events",
            params={"limit": limit},
            headers=self._admin_headers(),
        )
        if status != 200 or not isinstance(data, list):
            return []
        return data

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "GateClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
