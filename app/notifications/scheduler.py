"""
Notification scheduler - runs the random book broadcast on a fixed interval.

One cycle:
  resolve eligible recipients -> pick a book -> compose once per language
  -> fan out -> disable tokens the provider reported as unregistered

The scheduler is an explicit Idle/Running state machine: a tick that fires
while a cycle is still running is skipped, so at most one cycle is in flight.
Any error inside a cycle is logged and the scheduler goes back to Idle; the
next tick runs normally.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.content.repository import ContentRepository
from app.core.exceptions import StoreUnavailableError
from app.database import AsyncSessionLocal
from app.notifications.composer import MessageComposer
from app.notifications.dispatcher import PushDispatcher
from app.notifications.push import PushProvider
from app.notifications.repository import DeviceTokenRepository, RecipientRepository
from app.notifications.schemas import Recipient
from app.notifications.selector import ContentSelector
from app.notifications.token_cache import TokenCache

logger = logging.getLogger(__name__)

BROADCAST_JOB_ID = "random_book_broadcast"


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class CycleStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    NO_RECIPIENTS = "no_recipients"
    NO_CONTENT = "no_content"
    FAILED = "failed"


@dataclass
class CycleResult:
    """Outcome of one broadcast cycle (never persisted)."""
    status: CycleStatus
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    recipients: int = 0
    book_id: Optional[str] = None
    attempted: int = 0
    failed: int = 0
    disabled_tokens: int = 0


class BroadcastScheduler:
    """Drives the random book broadcast with an at-most-one-in-flight guarantee."""

    def __init__(
        self,
        provider: PushProvider,
        settings: Settings,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        rng: Optional[random.Random] = None,
        token_cache: Optional[TokenCache] = None,
    ):
        self.settings = settings
        self.token_cache = token_cache
        self.session_factory = session_factory
        self.rng = rng or random.Random()
        self.composer = MessageComposer()
        self.dispatcher = PushDispatcher(
            provider,
            max_concurrency=settings.push_max_concurrency,
            timeout=settings.push_timeout_seconds,
        )
        self._state = SchedulerState.IDLE
        self._timer: Optional[AsyncIOScheduler] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    # ── Timer ─────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start the recurring timer on the running event loop."""
        if self._timer is not None:
            return
        self._timer = AsyncIOScheduler(timezone="UTC")
        self._timer.add_job(
            self.tick,
            "interval",
            minutes=self.settings.broadcast_interval_minutes,
            id=BROADCAST_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        self._timer.start()
        logger.info(
            f"[Scheduler] Random book broadcast every "
            f"{self.settings.broadcast_interval_minutes} minute(s)"
        )

    def shutdown(self) -> None:
        if self._timer is not None:
            self._timer.shutdown(wait=False)
            self._timer = None
            logger.info("[Scheduler] Random book broadcast stopped")

    # ── State machine ─────────────────────────────────────────────────

    async def tick(self) -> CycleResult:
        """
        Run one cycle unless one is already running.

        The state is checked and set with no await in between, so two
        ticks on the same loop can never both enter Running.
        """
        if self._state is SchedulerState.RUNNING:
            logger.info("[Scheduler] Previous cycle still running - tick skipped")
            return CycleResult(status=CycleStatus.SKIPPED)

        self._state = SchedulerState.RUNNING
        try:
            return await self._run_cycle()
        except StoreUnavailableError as e:
            logger.error(f"[Scheduler] Store unavailable - cycle skipped: {e.message}")
            return CycleResult(status=CycleStatus.FAILED)
        except Exception:
            logger.exception("[Scheduler] Random book broadcast cycle failed")
            return CycleResult(status=CycleStatus.FAILED)
        finally:
            self._state = SchedulerState.IDLE

    async def _run_cycle(self) -> CycleResult:
        logger.info("[Scheduler] Running random book broadcast cycle")
        result = CycleResult(status=CycleStatus.COMPLETED)

        async with self.session_factory() as db:
            try:
                recipients = await RecipientRepository(db).resolve_recipients()
                result.recipients = len(recipients)
                if not recipients:
                    logger.info("[Scheduler] No users with random book notifications enabled")
                    result.status = CycleStatus.NO_RECIPIENTS
                    return result

                selector = ContentSelector(
                    ContentRepository(db),
                    promotable_sample_size=self.settings.promotable_sample_size,
                    fallback_sample_size=self.settings.fallback_sample_size,
                    min_rating=self.settings.promotable_min_rating,
                    rng=self.rng,
                )
                content = await selector.select_content()
                if content is None:
                    logger.info("[Scheduler] No books available - nothing sent")
                    result.status = CycleStatus.NO_CONTENT
                    return result
                result.book_id = content.id

                by_language: Dict[str, List[Recipient]] = defaultdict(list)
                for recipient in recipients:
                    by_language[recipient.language].append(recipient)

                report = await self.dispatcher.dispatch_batches(
                    (group, self.composer.compose(language, content))
                    for language, group in by_language.items()
                )
                result.attempted = report.attempted
                result.failed = report.failed

                if report.unregistered:
                    result.disabled_tokens = await DeviceTokenRepository(db).disable_pairs(
                        (r.user_id, r.token) for r in report.unregistered
                    )
                    await db.commit()
                    if self.token_cache is not None:
                        for r in report.unregistered:
                            self.token_cache.discard(r.user_id, r.token)

            except Exception:
                await db.rollback()
                raise

        logger.info(
            f"[Scheduler] Random book broadcast done - book {result.book_id}, "
            f"sent {result.attempted - result.failed}/{result.attempted}, "
            f"disabled {result.disabled_tokens} token(s)"
        )
        return result
