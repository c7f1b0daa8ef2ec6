"""Tests for wallet pass issuers."""

import json

import httpx
import pytest

from ticket_engine.common.exceptions import WalletPassError
from ticket_engine.tickets.models import TicketModel
from ticket_engine.wallet.issuer import (
    HostedWalletPassIssuer,
    RemoteWalletPassIssuer,
    build_wallet_issuer,
)

from tests.conftest import make_settings


def _ticket() -> TicketModel:
    return TicketModel(
        id="t-1",
        ticket_code="CP-T-ABC234",
        user_id="user-1",
        event_id="event-1",
        tier_name="VIP",
        quantity=2,
    )


def _issuer(handler) -> RemoteWalletPassIssuer:
    return RemoteWalletPassIssuer(
        "https://passes.example/", "svc-token", transport=httpx.MockTransport(handler),
    )


class TestHostedIssuer:
    async def test_url_layout(self):
        issuer = HostedWalletPassIssuer("https://wallet.example/")
        assert await issuer.issue(_ticket(), "apple") == "https://wallet.example/apple/t-1"


class TestRemoteIssuer:
    async def test_returns_service_url(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["token"] = request.headers["X-Service-Token"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"url": "https://passes.example/p/1"})

        url = await _issuer(handler).issue(_ticket(), "google")
        assert url == "https://passes.example/p/1"
        assert seen["path"] == "/v1/passes"
        assert seen["token"] == "svc-token"
        assert seen["body"]["provider"] == "google"
        assert seen["body"]["ticketCode"] == "CP-T-ABC234"

    async def test_missing_url_field(self):
        issuer = _issuer(lambda request: httpx.Response(200, json={"status": "queued"}))
        with pytest.raises(WalletPassError):
            await issuer.issue(_ticket(), "apple")

    async def test_non_json_body(self):
        issuer = _issuer(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(WalletPassError):
            await issuer.issue(_ticket(), "apple")

    async def test_empty_url(self):
        issuer = _issuer(lambda request: httpx.Response(200, json={"url": ""}))
        with pytest.raises(WalletPassError):
            await issuer.issue(_ticket(), "apple")

    async def test_http_error_propagates(self):
        issuer = _issuer(lambda request: httpx.Response(503, json={"error": "down"}))
        with pytest.raises(httpx.HTTPStatusError):
            await issuer.issue(_ticket(), "apple")


class TestBuildWalletIssuer:
    def test_hosted_by_default(self):
        assert isinstance(build_wallet_issuer(make_settings()), HostedWalletPassIssuer)

    def test_remote_when_service_configured(self):
        issuer = build_wallet_issuer(make_settings(wallet_service_url="https://passes.example"))
        assert isinstance(issuer, RemoteWalletPassIssuer)
