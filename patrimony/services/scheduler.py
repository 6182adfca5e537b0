"""Periodic price refresh scheduling."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from patrimony.lib.config import PRICE_REFRESH_INTERVAL
from patrimony.lib.logging_config import get_logger
from patrimony.models.holding import Holding
from patrimony.models.quote import QuoteResult
from patrimony.services.price_resolver import PriceResolver, price_identity

logger = get_logger(__name__)

Action = Callable[[], Awaitable[object]]


class Scheduler(ABC):
    """Runs an async action every N seconds until cancelled."""

    @abstractmethod
    def schedule(self, every_seconds: float, action: Action, job_id: str) -> None:
        """Schedule ``action``, replacing any job with the same id."""

    @abstractmethod
    def cancel(self, job_id: str) -> None:
        """Stop a job; unknown ids are ignored. Running actions are not interrupted."""


@dataclass
class _ManualJob:
    every_seconds: float
    action: Action
    next_due: float


class ManualScheduler(Scheduler):
    """Scheduler driven by an explicit clock, for tests and one-shot runs."""

    def __init__(self) -> None:
        self.now = 0.0
        self.jobs: dict[str, _ManualJob] = {}

    def schedule(self, every_seconds: float, action: Action, job_id: str) -> None:
        self.jobs[job_id] = _ManualJob(every_seconds, action, self.now + every_seconds)

    def cancel(self, job_id: str) -> None:
        self.jobs.pop(job_id, None)

    async def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every action that falls due.

        Args:
            seconds: Time to advance

        Returns:
            Number of actions run
        """
        target = self.now + seconds
        runs = 0

        while True:
            due = [
                (job.next_due, job_id)
                for job_id, job in self.jobs.items()
                if job.next_due <= target
            ]
            if not due:
                break
            next_due, job_id = min(due)
            job = self.jobs[job_id]
            self.now = next_due
            job.next_due = next_due + job.every_seconds
            await job.action()
            runs += 1

        self.now = target
        return runs


class IntervalScheduler(Scheduler):
    """APScheduler-backed scheduler running on the current asyncio loop."""

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None) -> None:
        self.scheduler = scheduler or AsyncIOScheduler()
        self.is_running = False

    def start(self) -> None:
        """Start the scheduler (must be called from within a running event loop)."""
        if self.is_running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.start()
        self.is_running = True
        logger.info("Price refresh scheduler started")

    def stop(self) -> None:
        """Stop the scheduler without waiting for running jobs."""
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=False)
        self.is_running = False
        logger.info("Price refresh scheduler stopped")

    def schedule(self, every_seconds: float, action: Action, job_id: str) -> None:
        self.scheduler.add_job(
            action,
            trigger=IntervalTrigger(seconds=every_seconds),
            id=job_id,
            name=job_id.replace("_", " ").title(),
            replace_existing=True,
            max_instances=1,
        )
        logger.debug(f"Scheduled {job_id} every {every_seconds}s")

    def cancel(self, job_id: str) -> None:
        if self.scheduler.get_job(job_id) is not None:
            self.scheduler.remove_job(job_id)
            logger.debug(f"Cancelled {job_id}")


class PriceRefresher:
    """Keeps resolver results fresh for the current holdings snapshot.

    A pass runs immediately and the interval restarts whenever the set of
    priced symbols changes; edits that leave every ticker and symbol alone
    only replace the snapshot used by the next periodic pass.
    """

    JOB_ID = "price_refresh"

    def __init__(
        self,
        resolver: PriceResolver,
        scheduler: Scheduler,
        interval: float = PRICE_REFRESH_INTERVAL,
    ):
        self.resolver = resolver
        self.scheduler = scheduler
        self.interval = interval
        self.holdings: list[Holding] = []
        self._identity: Optional[tuple[tuple[str, str], ...]] = None

    async def set_holdings(self, holdings: Sequence[Holding]) -> bool:
        """
        Replace the holdings snapshot.

        Args:
            holdings: New snapshot

        Returns:
            True if the priced symbols changed and a pass ran
        """
        self.holdings = list(holdings)
        identity = price_identity(self.holdings)
        if identity == self._identity:
            return False

        logger.info(f"Priced symbols changed ({len(identity)} symbols), refreshing")
        self._identity = identity
        self.scheduler.cancel(self.JOB_ID)
        self.scheduler.schedule(self.interval, self.refresh, self.JOB_ID)
        await self.refresh()
        return True

    async def refresh(self) -> dict[str, QuoteResult]:
        """Run one resolution pass over the current snapshot."""
        return await self.resolver.resolve_batch(self.holdings)

    def stop(self) -> None:
        """Clear the interval; lookups already in flight complete normally."""
        self.scheduler.cancel(self.JOB_ID)
        self._identity = None
