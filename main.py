"""
Main entry point for the ledgersync service.

Keeps token balances, transfers and payment streams of one ledger account
synchronized in the background and logs every change.
"""

import asyncio

from dotenv import load_dotenv
from ledgersync.bus import DataBus
from ledgersync.config import load_settings
from ledgersync.ledger import ConnectivityWatcher, LedgerClient
from ledgersync.logging_config import setup_logging
from ledgersync.memo import distinct_until_changed
from ledgersync.models import DomainSnapshot, DomainType, TransactionProgress
from ledgersync.registry import DataServiceRegistry
from ledgersync.transactions import ModalCoordinator, TransactionTracker

# Load environment variables
load_dotenv()

settings = load_settings()
logger = setup_logging(settings.log_file, settings.log_level)


def log_snapshot(snapshot: DomainSnapshot) -> None:
    logger.info(f"📊 {snapshot.domain.value}: {len(snapshot.items)} item(s)")


def log_progress(progress: TransactionProgress) -> None:
    logger.info(f"🔄 Transaction {progress.status.value} ({progress.progress_percent}%)")


async def main() -> None:
    """
    Main entry point for the ledgersync service.

    ## Initialization
    1. Build the ledger client, bus and registry, plus a transaction tracker
       wired to the modal coordinator
    2. Initialize the registry (starts the poll timers)
    3. Subscribe a logging consumer per domain

    ## Task Orchestration
    When `LEDGER_WS_URL` is set the connectivity watcher runs in a
    TaskGroup; a reconnect re-fetches every subscribed domain. Without it
    the poll timers alone keep the data current.

    ## Shutdown
    The finally block always stops the registry and closes the HTTP client.
    """
    logger.info("=== ledgersync Starting ===")
    logger.info(f"Following account {settings.account} via {settings.api_url}")

    ledger = LedgerClient(
        settings.api_url, receipt_poll_interval=settings.receipt_poll_interval
    )
    bus = DataBus()
    registry = DataServiceRegistry(ledger, settings.account, bus=bus, settings=settings)
    modals = ModalCoordinator()
    # Writes issued through run_write(tracker, ...) suppress dialogs until confirmed
    tracker = TransactionTracker(ledger.wait_for_receipt, modals=modals)
    tracker.subscribe(log_progress)

    try:
        registry.initialize()
        for domain in DomainType:
            registry.subscribe(domain, distinct_until_changed(log_snapshot))

        if settings.ws_url:
            watcher = ConnectivityWatcher(settings.ws_url)
            watcher.on_reconnect(lambda: _refresh_after_reconnect(registry))
            try:
                async with asyncio.TaskGroup() as tg:
                    tg.create_task(watcher.run())
            finally:
                await watcher.close()

        # Poll timers keep running until the process is interrupted
        await asyncio.Event().wait()

    except* Exception as e:
        logger.error(f"Fatal error in main loop: {e}", exc_info=True)
        raise
    finally:
        await registry.shutdown()
        await ledger.aclose()
        logger.info("=== ledgersync Stopped ===")


async def _refresh_after_reconnect(registry: DataServiceRegistry) -> None:
    failed = await registry.handle_reconnect()
    if failed:
        logger.warning(f"⚠️ Refresh after reconnect failed for: {[d.value for d in failed]}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("✅ Shutdown completed gracefully")
