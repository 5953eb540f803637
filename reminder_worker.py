"""
CarGuard reminder worker - Main Entry Point
Wires the database, email backend and reminder sweep together and runs the
sweep hourly until SIGINT/SIGTERM.
"""
import asyncio
import logging
import signal
import sys

from sqlalchemy.exc import SQLAlchemyError

from carguard.config import get_config
from carguard.database import close_database, get_engine, init_database
from carguard.services.email_service import build_notifier
from carguard.services.reminder_service import ReminderService
from carguard.services.scheduler import SystemClock, build_reminder_timer
from carguard.store import SqlObligationStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=level
    )


async def run_worker() -> int:
    """Start the reminder timer and block until a shutdown signal arrives"""
    config = get_config()

    # A broken database must not crash the process; just don't schedule sweeps
    logger.info("Initializing database...")
    try:
        engine = get_engine()
        init_database(engine)
    except SQLAlchemyError as e:
        logger.error(f"Database unavailable, reminder sweeps disabled: {e}")
        return 1

    clock = SystemClock()
    notifier = build_notifier(config)
    service = ReminderService(
        store=SqlObligationStore(engine),
        notifier=notifier,
        clock=clock,
        send_delay_seconds=config.reminder_send_delay_seconds,
    )
    timer = build_reminder_timer(service, config, clock)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    timer.start()
    logger.info("Background reminder checker started")

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await timer.stop()
        close = getattr(notifier, "close", None)
        if close is not None:
            await close()
        close_database()

    return 0


def main() -> None:
    """Start the worker"""
    config = get_config()
    configure_logging(config.log_level)
    sys.exit(asyncio.run(run_worker()))


if __name__ == '__main__':
    main()
