"""
Email poller

Background inbox polling with APScheduler:
- inbox sync on a fixed interval, one cycle at a time
- exponential backoff after throttled provider errors
- hourly purge of dismissed notifications
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from leaddesk.config import settings
from leaddesk.core.exceptions import MailProviderError
from leaddesk.database import async_session_factory
from leaddesk.services.email_sync_service import EmailSyncService, SyncSummary
from leaddesk.services.integrations.base import MailProvider
from leaddesk.services.integrations.email import get_mail_provider
from leaddesk.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class PollState:
    IDLE = "idle"
    FETCHING = "fetching"
    PROCESSING = "processing"


def compute_backoff(consecutive_errors: int, cap: int = 300) -> int:
    """Seconds to wait after `consecutive_errors` throttled failures."""
    return min(2 ** consecutive_errors, cap)


class EmailPoller:
    """
    Polls the mailbox and feeds new messages through EmailSyncService.

    The fetch window starts at the start time of the last successful cycle,
    so a failed cycle is retried over the same window on the next tick.
    """

    def __init__(
        self,
        session_factory=async_session_factory,
        provider_getter: Callable[[], MailProvider] = get_mail_provider,
        interval_seconds: int = settings.EMAIL_POLL_INTERVAL_SECONDS,
        lookback_hours: int = settings.EMAIL_POLL_LOOKBACK_HOURS,
        backoff_cap_seconds: int = settings.EMAIL_BACKOFF_CAP_SECONDS,
        max_consecutive_errors: int = settings.EMAIL_MAX_CONSECUTIVE_ERRORS,
        retention_days: int = settings.NOTIFICATION_RETENTION_DAYS
    ):
        self.session_factory = session_factory
        self.provider_getter = provider_getter
        self.interval_seconds = interval_seconds
        self.lookback = timedelta(hours=lookback_hours)
        self.backoff_cap_seconds = backoff_cap_seconds
        self.max_consecutive_errors = max_consecutive_errors
        self.retention_days = retention_days

        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.is_running = False

        self.state = PollState.IDLE
        self.since: Optional[datetime] = None
        self.consecutive_errors = 0
        self.backoff_until: Optional[datetime] = None
        self.last_summary: Optional[SyncSummary] = None

    def start(self):
        """Start the scheduler"""
        if self.is_running:
            logger.warning("Email poller already running")
            return

        self.scheduler.add_job(
            self.poll_once,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="email_poll",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.add_job(
            self.purge_notifications,
            trigger=IntervalTrigger(hours=1),
            id="notification_purge",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )

        self.scheduler.start()
        self.is_running = True
        logger.info(f"Email poller started (every {self.interval_seconds}s)")

    def stop(self):
        """Stop the scheduler"""
        if not self.is_running:
            return
        self.scheduler.shutdown(wait=False)
        self.is_running = False
        logger.info("Email poller stopped")

    async def poll_once(self, now: Optional[datetime] = None) -> Optional[SyncSummary]:
        """Run one cycle. Returns None when the cycle was skipped or failed."""
        now = now or datetime.utcnow()

        if self.state != PollState.IDLE:
            logger.debug(f"Previous poll still {self.state}, skipping tick")
            return None
        if self.backoff_until and now < self.backoff_until:
            logger.debug(f"Backing off until {self.backoff_until.isoformat()}")
            return None

        provider = self.provider_getter()
        if not provider.is_configured():
            return None

        since = self.since or (now - self.lookback)
        try:
            async with self.session_factory() as session:
                sync = EmailSyncService(session, provider)

                self.state = PollState.FETCHING
                messages = await sync.fetch(since)

                self.state = PollState.PROCESSING
                summary = await sync.process(messages)

                await NotificationService(session).backfill_missing(now - self.lookback)
        except MailProviderError as e:
            self._record_failure(e, now)
            return None
        except Exception:
            logger.exception("Inbox poll failed")
            return None
        finally:
            self.state = PollState.IDLE

        self.since = now
        self.consecutive_errors = 0
        self.backoff_until = None
        self.last_summary = summary

        if summary.checked:
            logger.info(f"Inbox poll: checked={summary.checked} saved={summary.saved} unmatched={summary.unmatched}")
        return summary

    def _record_failure(self, error: MailProviderError, now: datetime) -> None:
        if not error.is_throttled:
            logger.error(f"Inbox poll failed: {error}")
            return

        self.consecutive_errors += 1
        if self.consecutive_errors >= self.max_consecutive_errors:
            logger.warning(f"{self.consecutive_errors} throttled polls in a row, resetting backoff")
            self.consecutive_errors = 0
            self.backoff_until = None
            return

        delay = compute_backoff(self.consecutive_errors, self.backoff_cap_seconds)
        self.backoff_until = now + timedelta(seconds=delay)
        logger.warning(f"Mail provider throttled ({error}), backing off {delay}s")

    async def purge_notifications(self) -> int:
        try:
            async with self.session_factory() as session:
                return await NotificationService(session).purge_dismissed(self.retention_days)
        except Exception:
            logger.exception("Notification purge failed")
            return 0


# Global poller instance
_poller_instance: Optional[EmailPoller] = None


def get_email_poller() -> EmailPoller:
    """Get the global poller instance"""
    global _poller_instance
    if _poller_instance is None:
        _poller_instance = EmailPoller()
    return _poller_instance
