"""
Reminder service - one sweep over all un-sent obligations.
Looks up car and owner, decides eligibility, emails the owner and records
the send. Failures are contained per obligation; the next sweep retries.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from carguard.models import is_reminder_type
from carguard.services.eligibility import is_due
from carguard.services.email_service import Notifier
from carguard.services.scheduler import Clock, SystemClock
from carguard.store import ObligationStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep"""
    started_at: datetime
    finished_at: Optional[datetime] = None
    scanned: int = 0
    due: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReminderStats:
    """Running totals since the service was created"""
    total_sweeps: int = 0
    failed_sweeps: int = 0
    skipped_sweeps: int = 0
    total_sent: int = 0
    total_failed: int = 0
    last_sweep_at: Optional[datetime] = None
    last_result: Optional[SweepResult] = field(default=None, repr=False)


class ReminderService:
    """
    Sends expiry reminders.

    Dependencies are injected: the store for reads and the sent-flag write,
    the notifier for delivery and the clock for "now" and the pause between
    sends.
    """

    def __init__(
        self,
        store: ObligationStore,
        notifier: Notifier,
        clock: Optional[Clock] = None,
        send_delay_seconds: float = 0.5,
    ):
        self.store = store
        self.notifier = notifier
        self.clock = clock or SystemClock()
        self.send_delay_seconds = send_delay_seconds
        self.stats = ReminderStats()
        self._lock = asyncio.Lock()

    @property
    def sweep_in_progress(self) -> bool:
        return self._lock.locked()

    async def run_sweep(self) -> Optional[SweepResult]:
        """
        Run one sweep unless another one is still in progress.

        Returns:
            SweepResult, or None when the sweep was skipped because a
            previous one had not finished
        """
        if self._lock.locked():
            logger.warning("Previous reminder sweep still running, skipping this tick")
            self.stats.skipped_sweeps += 1
            return None

        async with self._lock:
            result = await self._sweep()

        self.stats.total_sweeps += 1
        self.stats.total_sent += result.sent
        self.stats.total_failed += result.failed
        self.stats.last_sweep_at = result.finished_at
        self.stats.last_result = result
        if not result.ok:
            self.stats.failed_sweeps += 1
        return result

    async def _sweep(self) -> SweepResult:
        now = self.clock.now()
        result = SweepResult(started_at=now)

        try:
            obligations = self.store.list_unsent()
        except Exception as e:
            logger.error(f"Error in reminder sweep: could not load services: {e}")
            result.error = str(e)
            result.finished_at = self.clock.now()
            return result

        result.scanned = len(obligations)
        attempted = 0

        for obligation in obligations:
            # Refuel and expense records never get reminders
            if not is_reminder_type(obligation.service_type):
                continue

            try:
                car = self.store.get_car(obligation.car_id)
                user = self.store.get_user(obligation.user_id)
            except Exception as e:
                logger.error(f"Lookup failed for service {obligation.id}: {e}")
                result.skipped += 1
                continue

            if car is None or user is None:
                missing = "car" if car is None else "user"
                logger.warning(
                    f"Service {obligation.id} references a missing {missing}, skipping"
                )
                result.skipped += 1
                continue

            if not is_due(obligation, user, now):
                continue

            result.due += 1

            if attempted and self.send_delay_seconds > 0:
                await self.clock.sleep(self.send_delay_seconds)
            attempted += 1

            if await self._send(obligation, car, user, now.date()):
                result.sent += 1
            else:
                result.failed += 1

        result.finished_at = self.clock.now()
        logger.info(
            f"Reminder check completed at {result.finished_at.isoformat()}: "
            f"scanned={result.scanned} due={result.due} sent={result.sent} "
            f"failed={result.failed} skipped={result.skipped}"
        )
        return result

    async def _send(self, obligation, car, user, today) -> bool:
        """Deliver one reminder and flag it; False leaves it for the next sweep"""
        to_email = user.normalized_email
        try:
            delivered = await self.notifier.send(
                to_email, car, obligation.service_type, obligation.expiry_date,
                today=today,
            )
        except Exception as e:
            logger.error(f"Notifier raised for service {obligation.id} ({to_email}): {e}")
            return False

        if not delivered:
            logger.error(
                f"Reminder for service {obligation.id} to {to_email} failed, will retry next sweep"
            )
            return False

        try:
            self.store.mark_sent(obligation.id)
        except Exception as e:
            # The email went out; without the flag it may be sent again next sweep
            logger.error(f"Could not mark service {obligation.id} as sent: {e}")
            return False

        logger.info(
            f"Reminder sent for service {obligation.id} "
            f"({obligation.service_type.value}, {car.display_name}) to {to_email}"
        )
        return True
