"""Bounded worker pool for batch dispatch."""

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from notify_shared.enums import Channel, ErrorKind
from notify_shared.models import NotificationPayload

from delivery_core.orchestrator import Orchestrator
from delivery_core.providers.base import DeliveryResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DispatchItem:
    channel: Channel
    payload: NotificationPayload


class DispatchPool:
    """Runs the orchestrator over a batch with a fixed number of workers.

    Results are returned one-to-one with the input, in input order.  A
    failure in one item never affects another.
    """

    def __init__(self, orchestrator: Orchestrator, size: int) -> None:
        if size < 1:
            raise ValueError("Pool size must be at least 1")
        self._orchestrator = orchestrator
        self._size = size

    @property
    def size(self) -> int:
        return self._size

    def dispatch(
        self,
        items: Sequence[DispatchItem],
        cancel: threading.Event | None = None,
    ) -> list[DeliveryResult]:
        cancel = cancel or threading.Event()
        results: list[DeliveryResult | None] = [None] * len(items)
        if not items:
            return []

        with ThreadPoolExecutor(
            max_workers=min(self._size, len(items)), thread_name_prefix="dispatch"
        ) as executor:
            futures = {
                executor.submit(self._run_one, item, cancel): index
                for index, item in enumerate(items)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        succeeded = sum(1 for r in results if r is not None and r.success)
        logger.info(
            "Batch dispatched",
            extra={"items": len(items), "succeeded": succeeded, "pool_size": self._size},
        )
        return [r for r in results if r is not None]

    def _run_one(self, item: DispatchItem, cancel: threading.Event) -> DeliveryResult:
        if cancel.is_set():
            return DeliveryResult(
                success=False,
                channel=item.channel,
                recipient=item.payload.to,
                error_kind=ErrorKind.CANCELLED,
                error="Batch cancelled before delivery started",
            )
        try:
            return self._orchestrator.deliver(item.channel, item.payload, cancel=cancel)
        except Exception as exc:
            logger.exception(
                "Batch item failed unexpectedly", extra={"channel": item.channel}
            )
            return DeliveryResult(
                success=False,
                channel=item.channel,
                recipient=item.payload.to,
                error_kind=ErrorKind.INTERNAL,
                error=str(exc),
            )
