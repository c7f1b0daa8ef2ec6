"""Tests for the ticket-engine CLI."""

from unittest.mock import patch

from typer.testing import CliRunner

from ticket_engine.cli import app
from ticket_engine.client import ClientCheckInResult

runner = CliRunner()


class TestCli:
    def test_code_prints_codes(self):
        result = runner.invoke(app, ["code", "--count", "3"])
        assert result.exit_code == 0
        lines = [line for line in result.output.splitlines() if line.strip()]
        assert len(lines) == 3
        assert all(line.startswith("CP-T-") for line in lines)

    def test_scan_accepted(self):
        with patch("ticket_engine.client.GateClient.check_in") as check_in:
            check_in.return_value = ClientCheckInResult(
                valid=True, outcome="accepted", message="Ticket scanned successfully",
            )
            result = runner.invoke(app, ["scan", "CP-T-ABC234", "--device", "north-gate"])
        assert result.exit_code == 0
        assert "ACCEPTED" in result.output
        check_in.assert_called_once_with("CP-T-ABC234")

    def test_scan_duplicate_exits_nonzero(self):
        with patch("ticket_engine.client.GateClient.check_in") as check_in:
            check_in.return_value = ClientCheckInResult(
                valid=False, outcome="duplicate", message="Ticket already scanned",
            )
            result = runner.invoke(app, ["scan", "CP-T-ABC234"])
        assert result.exit_code == 1
        assert "DUPLICATE" in result.output
