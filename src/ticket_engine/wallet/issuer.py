"""Wallet pass issuers — the engine records URLs, it never renders passes."""

import logging
from typing import Protocol

import httpx

from ticket_engine.common.config import TicketEngineSettings
from ticket_engine.common.exceptions import WalletPassError
from ticket_engine.tickets.models import TicketModel

logger = logging.getLogger(__name__)

APPLE = "apple"
GOOGLE = "google"
PROVIDERS = frozenset({APPLE, GOOGLE})


class WalletPassIssuer(Protocol):
    async def issue(self, ticket: TicketModel, provider: str) -> str:
        """Return a pass URL for the ticket on the given provider."""
        ...


class HostedWalletPassIssuer:
    """Pass URLs served by the wallet host under /{provider}/{ticket_id}."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    async def issue(self, ticket: TicketModel, provider: str) -> str:
        return f"{self.base_url}/{provider}/{ticket.id}"


class RemoteWalletPassIssuer:
    """Calls an external pass service's /v1/passes endpoint."""

    def __init__(
        self,
        base_url: str,
        service_token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_token = service_token
        self.timeout = timeout
        self._transport = transport

    async def issue(self, ticket: TicketModel, provider: str) -> str:
        """Raises httpx.HTTPError on transport or HTTP errors, WalletPassError on a bad body."""
        payload = {
            "provider": provider,
            "ticketId": ticket.id,
            "ticketCode": ticket.ticket_code,
            "eventId": ticket.event_id,
            "tierName": ticket.tier_name,
            "quantity": ticket.quantity,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(
                f"{self.base_url}/v1/passes",
                json=payload,
                headers={"X-Service-Token": self.service_token},
            )
            resp.raise_for_status()
            try:
                url = resp.json()["url"]
            except (ValueError, KeyError, TypeError) as e:
                logger.error("Malformed pass service response for %s: %s", ticket.id, resp.text[:200])
                raise WalletPassError("Pass service returned no URL") from e
        if not isinstance(url, str) or not url:
            raise WalletPassError("Pass service returned no URL")
        return url


def build_wallet_issuer(settings: TicketEngineSettings) -> WalletPassIssuer:
    if settings.wallet_service_url:
        return RemoteWalletPassIssuer(
            settings.wallet_service_url,
            settings.wallet_service_token,
            timeout=settings.gateway_timeout,
        )
    return HostedWalletPassIssuer(settings.wallet_base_url)
