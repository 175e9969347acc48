"""Typer CLI for RWA Ledger."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="rwa-ledger", help="RWA Ledger: fractional ownership ledger and order book")
console = Console()


def _database():
    from rwa_ledger.common.config import get_settings
    from rwa_ledger.common.database import DatabaseManager

    return DatabaseManager(get_settings())


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the RWA Ledger API server."""
    import uvicorn
    from rwa_ledger.app import create_app

    console.print(f"[bold green]Starting RWA Ledger on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""

    async def _run():
        db = _database()
        await db.init()
        await db.create_all()
        await db.close()

    asyncio.run(_run())
    console.print("[bold green]Database initialized[/bold green]")


@app.command()
def seed():
    """Load demo users and assets (idempotent)."""
    from rwa_ledger.seed import seed_demo

    async def _run() -> list[str]:
        db = _database()
        await db.init()
        await db.create_all()
        try:
            return await seed_demo(db)
        finally:
            await db.close()

    for line in asyncio.run(_run()):
        console.print(f"  {line}")


@app.command("verify-chain")
def verify_chain(
    asset_id: str = typer.Argument(..., help="Asset whose transfer chain to verify"),
):
    """Verify the hash chain and signatures of an asset's transfer log."""
    from rwa_ledger.common.config import get_settings
    from rwa_ledger.transfers.service import TransferLog

    async def _run() -> dict:
        db = _database()
        await db.init()
        try:
            async with db.get_session() as session:
                return await TransferLog(get_settings()).verify_chain(session, asset_id)
        finally:
            await db.close()

    result = asyncio.run(_run())
    if result["valid"]:
        console.print(
            f"[bold green]VALID[/bold green] — {result['entries_checked']} entries checked"
        )
    else:
        console.print(
            f"[bold red]BROKEN[/bold red] at transfer {result['break_at']} "
            f"after {result['entries_checked']} good entries"
        )
        raise typer.Exit(1)


@app.command("check-supply")
def check_supply():
    """Report held + escrowed + remaining against total supply for every asset."""
    from rwa_ledger.ledger.invariants import supply_report

    async def _run() -> list[dict]:
        db = _database()
        await db.init()
        try:
            async with db.get_session() as session:
                return await supply_report(session)
        finally:
            await db.close()

    rows = asyncio.run(_run())
    table = Table(title="Supply")
    for column in ("Asset", "Held", "Escrowed", "Remaining", "Total", "Balanced"):
        table.add_column(column)
    for row in rows:
        table.add_row(
            row["asset_id"],
            str(row["held"]),
            str(row["escrowed"]),
            str(row["remaining"]),
            str(row["total"]),
            "[green]yes[/green]" if row["balanced"] else "[red]NO[/red]",
        )
    console.print(table)
    if not all(row["balanced"] for row in rows):
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check RWA Ledger server health."""
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
