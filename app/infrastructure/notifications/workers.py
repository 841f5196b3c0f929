"""Dispatch worker pool.

A fixed number of daemon threads, each independently dequeuing ready
items and handing them to the dispatch handler. Waiting for work never
blocks other workers. A handler exception (for example a ledger write
failure) puts the item back on the queue after a short delay; the loop
logs and continues.
"""

import threading
from typing import Callable, Dict, List, Optional

import structlog
from infrastructure.logging import bind_notification_context
from infrastructure.notifications.models import QueueItem
from infrastructure.notifications.queue import DispatchQueue

logger = structlog.get_logger()

DispatchHandler = Callable[[QueueItem], None]


class DispatchWorkerPool:
    """Bounded pool of queue consumers.

    Attributes:
        queue: DispatchQueue to consume
        handler: Called with each dequeued item
        size: Number of worker threads
        poll_interval: Seconds to wait when no item is ready
        failure_delay_seconds: Delay before a failed item becomes ready again
    """

    def __init__(
        self,
        queue: DispatchQueue,
        handler: DispatchHandler,
        size: int = 4,
        poll_interval: float = 0.5,
        failure_delay_seconds: float = 5.0,
    ) -> None:
        self.queue = queue
        self.handler = handler
        self.size = size
        self.poll_interval = poll_interval
        self.failure_delay_seconds = failure_delay_seconds

        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self._in_flight = 0
        self._stats: Dict[str, int] = {"processed": 0, "failed": 0, "requeued": 0}
        self.log = logger.bind(component="dispatch_worker_pool")

    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._threads = [
            threading.Thread(
                target=self._run,
                args=(f"dispatch-worker-{i + 1}",),
                name=f"dispatch-worker-{i + 1}",
                daemon=True,
            )
            for i in range(self.size)
        ]
        for thread in self._threads:
            thread.start()
        self.log.info("worker_pool_started", size=self.size)

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        """Signal workers to stop and wait for in-flight rounds to finish."""
        self._stop_event.set()
        for thread in self._threads:
            thread.join(timeout=timeout)
        self._threads = []
        self.log.info("worker_pool_stopped", **self.stats())

    def in_flight_count(self) -> int:
        with self._lock:
            return self._in_flight

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats, in_flight=self._in_flight)

    def _run(self, worker_id: str) -> None:
        log = self.log.bind(worker_id=worker_id)
        while not self._stop_event.is_set():
            try:
                processed = self.run_once(worker_id)
            except Exception as e:
                log.error("dispatch_queue_poll_failed", error=str(e), exc_info=True)
                processed = False
            if not processed:
                self._stop_event.wait(self.poll_interval)

    def run_once(self, worker_id: str = "dispatch-worker") -> bool:
        """Dequeue and handle one ready item.

        Returns:
            True if an item was handled (successfully or not).
        """
        item = self.queue.dequeue_ready()
        if item is None:
            return False

        with self._lock:
            self._in_flight += 1
        try:
            with bind_notification_context(item.notification_id, worker_id=worker_id):
                self.handler(item)
            with self._lock:
                self._stats["processed"] += 1
        except Exception as e:
            self.log.error(
                "dispatch_round_failed",
                worker_id=worker_id,
                notification_id=item.notification_id,
                error=str(e),
                exc_info=True,
            )
            with self._lock:
                self._stats["failed"] += 1
            self._requeue(item, worker_id)
        finally:
            with self._lock:
                self._in_flight -= 1
        return True

    def _requeue(self, item: QueueItem, worker_id: str) -> None:
        try:
            self.queue.requeue_item(item, self.failure_delay_seconds)
        except Exception as e:
            self.log.error(
                "dispatch_requeue_failed",
                worker_id=worker_id,
                notification_id=item.notification_id,
                error=str(e),
                exc_info=True,
            )
            return
        with self._lock:
            self._stats["requeued"] += 1
        self.log.warning(
            "dispatch_item_requeued",
            worker_id=worker_id,
            notification_id=item.notification_id,
            delay_seconds=self.failure_delay_seconds,
        )
