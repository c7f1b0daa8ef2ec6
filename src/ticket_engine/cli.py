"""Typer CLI for Ticket-Engine."""

import asyncio

import typer
from rich.console import Console

app = typer.Typer(name="ticket-engine", help="Ticket-Engine: event ticket lifecycle and check-in")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Ticket-Engine API server."""
    import uvicorn
    from ticket_engine.app import create_app

    console.print(f"[bold green]Starting Ticket-Engine on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command()
def code(
    count: int = typer.Option(1, help="How many codes to print"),
):
    """Generate ticket codes (offline, no DB required)."""
    from ticket_engine.common.config import get_settings
    from ticket_engine.tickets.codes import generate_ticket_code

    settings = get_settings()
    for _ in range(count):
        console.print(f"[bold]{generate_ticket_code(settings.code_prefix, settings.code_length)}[/bold]")


@app.command("expire-due")
def expire_due():
    """Expire confirmed tickets whose event has passed."""
    from ticket_engine.common.logging import setup_logging
    from ticket_engine.common.config import get_settings
    from ticket_engine.deps import get_coordinator, get_db

    setup_logging(get_settings().log_level)

    async def _run() -> list[str]:
        db = get_db()
        await db.init()
        await db.create_all()
        try:
            return await get_coordinator().expire_due()
        finally:
            await db.close()

    expired = asyncio.run(_run())
    for ticket_id in expired:
        console.print(f"  expired {ticket_id}")
    console.print(f"[bold green]{len(expired)} ticket(s) expired[/bold green]")


@app.command()
def scan(
    ticket_code: str = typer.Argument(..., help="Ticket code to check in"),
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
    device: str = typer.Option("cli", help="Scanner identity recorded in the ledger"),
):
    """Check a ticket in against a running server."""
    from ticket_engine.client import GateClient

    with GateClient(url, device_id=device) as client:
        result = client.check_in(ticket_code)

    if result.valid:
        console.print(f"[bold green]ACCEPTED[/bold green] — {result.message}")
    else:
        label = (result.outcome or result.code or "ERROR").upper()
        console.print(f"[bold red]{label}[/bold red] — {result.message}")
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Ticket-Engine server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
