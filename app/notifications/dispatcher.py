"""
Push dispatcher - fans one composed message out to many recipients.

Each recipient is sent in its own task. A task never raises: it returns a
SendOutcome, so one bad token, provider error or timeout only affects that
recipient and shows up in the failure count.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from app.core.exceptions import UpstreamDeliveryError
from app.notifications.push import PushProvider
from app.notifications.schemas import PushMessage, Recipient

logger = logging.getLogger(__name__)


@dataclass
class SendOutcome:
    """Result of one send attempt."""
    recipient: Recipient
    ok: bool
    receipt: Optional[str] = None
    error: Optional[str] = None
    unregistered: bool = False


@dataclass
class DispatchReport:
    """Aggregate of a fan-out."""
    outcomes: List[SendOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def unregistered(self) -> List[Recipient]:
        """Recipients whose token the provider reported as gone."""
        return [o.recipient for o in self.outcomes if o.unregistered]


class PushDispatcher:
    """Concurrent, failure-isolated fan-out over a push provider."""

    def __init__(
        self,
        provider: PushProvider,
        max_concurrency: int = 50,
        timeout: float = 10.0,
    ):
        self.provider = provider
        self.max_concurrency = max(1, max_concurrency)
        self.timeout = timeout

    async def dispatch(
        self, recipients: Sequence[Recipient], message: PushMessage
    ) -> DispatchReport:
        """
        Send `message` to every recipient.

        Sends run concurrently (bounded by max_concurrency) in no particular
        order. Individual failures are logged and counted, never raised.
        An empty recipient list is a no-op.
        """
        return await self.dispatch_batches([(recipients, message)])

    async def dispatch_batches(
        self, batches: Iterable[Tuple[Sequence[Recipient], PushMessage]]
    ) -> DispatchReport:
        """
        Send several (recipients, message) batches as one fan-out.

        Every send of every batch runs at once under a single
        max_concurrency limit, so a slow batch does not hold back the others.
        """
        sends = [
            (recipient, message)
            for recipients, message in batches
            for recipient in recipients
        ]
        if not sends:
            return DispatchReport()

        semaphore = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(
            *(self._send_one(recipient, message, semaphore) for recipient, message in sends)
        )
        report = DispatchReport(outcomes=list(outcomes))

        logger.info(
            f"[Dispatcher] Fan-out done - attempted {report.attempted}, "
            f"failed {report.failed}"
        )
        return report

    async def _send_one(
        self,
        recipient: Recipient,
        message: PushMessage,
        semaphore: asyncio.Semaphore,
    ) -> SendOutcome:
        async with semaphore:
            try:
                receipt = await asyncio.wait_for(
                    self.provider.deliver(recipient.token, message),
                    timeout=self.timeout,
                )
                return SendOutcome(recipient=recipient, ok=True, receipt=receipt)

            except asyncio.TimeoutError:
                logger.warning(
                    f"[Dispatcher] Push to user {recipient.user_id} timed out after {self.timeout}s"
                )
                return SendOutcome(recipient=recipient, ok=False, error="timeout")

            except UpstreamDeliveryError as e:
                logger.warning(
                    f"[Dispatcher] Push to user {recipient.user_id} failed: {e.message}"
                )
                return SendOutcome(
                    recipient=recipient,
                    ok=False,
                    error=e.message,
                    unregistered=e.unregistered,
                )

            except Exception as e:
                logger.warning(
                    f"[Dispatcher] Push to user {recipient.user_id} failed unexpectedly: {e!r}"
                )
                return SendOutcome(recipient=recipient, ok=False, error=repr(e))
