"""Command line entry points: API server and accrual reconciliation worker."""

import asyncio

import click
import structlog

from gophermart.config import settings
from gophermart.logging import setup_logging

logger = structlog.get_logger(__name__)


def _apply_overrides(address: str | None, database_uri: str | None, accrual_address: str | None) -> None:
    """Let command line flags win over environment variables.

    Must run before gophermart.db is imported: the engine is built from settings.
    """
    if address:
        settings.run_address = address
    if database_uri:
        settings.database_uri = database_uri
    if accrual_address:
        settings.accrual_system_address = accrual_address


@click.group()
def cli() -> None:
    """Gophermart loyalty service."""
    setup_logging()


@cli.command()
@click.option("-a", "address", help="Address to serve HTTP on (host:port).")
@click.option("-d", "database_uri", help="Database URI.")
@click.option("-r", "accrual_address", help="Accrual system address.")
def serve(address: str | None, database_uri: str | None, accrual_address: str | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    _apply_overrides(address, database_uri, accrual_address)
    host, port = settings.host_and_port
    # log_config=None keeps the structlog handlers installed by setup_logging()
    uvicorn.run("gophermart.main:app", host=host, port=port, log_config=None)


async def _sync_accruals(once: bool, batch_size: int, interval: float) -> None:
    from gophermart.db import async_session_maker, dispose_engine
    from gophermart.services.external.accrual import AccrualClient
    from gophermart.services.orders.accrual_sync_service import AccrualSyncService

    client = AccrualClient()
    try:
        while True:
            async with async_session_maker() as session:
                result = await AccrualSyncService(session, client).sync_pending(limit=batch_size)
            if once:
                return
            delay = interval
            if result.rate_limited and result.retry_after:
                delay = max(interval, float(result.retry_after))
            await asyncio.sleep(delay)
    finally:
        await dispose_engine()


@cli.command("sync-accruals")
@click.option("-d", "database_uri", help="Database URI.")
@click.option("-r", "accrual_address", help="Accrual system address.")
@click.option("--once", is_flag=True, help="Run a single pass and exit.")
@click.option("--batch-size", type=int, default=None, help="Orders checked per pass.")
def sync_accruals(database_uri: str | None, accrual_address: str | None, once: bool, batch_size: int | None) -> None:
    """Poll the accrual system for orders that are still pending."""
    _apply_overrides(None, database_uri, accrual_address)
    logger.info("Starting accrual sync worker", accrual_system=settings.accrual_system_address, once=once)
    asyncio.run(
        _sync_accruals(
            once=once,
            batch_size=batch_size or settings.accrual_sync_batch_size,
            interval=settings.accrual_poll_interval,
        )
    )


@cli.command("init-db")
@click.option("-d", "database_uri", help="Database URI.")
def init_db(database_uri: str | None) -> None:
    """Create missing tables."""
    _apply_overrides(None, database_uri, None)

    async def _run() -> None:
        from gophermart.db import create_schema, dispose_engine

        try:
            await create_schema()
        finally:
            await dispose_engine()

    asyncio.run(_run())
    logger.info("Database schema ensured")
