"""Publisher for transcript change events with thread-safe subscriber management.

This module implements the Observer pattern's publisher component. The
reconciliation loop hands every history update to the publisher, which
delivers it to subscribers from its own dispatch thread. Subscribers are
therefore never called while the service lock is held and may call back
into the service (get_unsent_delta, mark_delta_sent) from their handler.
"""

import queue
import threading
import logging
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from captionmirror.protocols import TranscriptSubscriber


class TranscriptPublisher:
    """Manages subscribers and dispatches transcript updates asynchronously.

    Thread Safety:
        - Subscription management uses a lock for thread-safe registration
        - Subscriber list is copied before iteration (lock released during callbacks)
        - publish() only enqueues; callbacks run on the dispatch thread

    Ordering:
        - publish() accepts an optional revision number
        - A payload older than the last delivered revision is dropped, so a
          re-rendering subscriber always ends on the newest transcript

    Error Handling:
        - Each subscriber notification is wrapped in try-except
        - Exceptions logged but don't affect other subscribers

    When the dispatch thread is not started, publish() delivers synchronously
    on the caller's thread. The service always publishes after releasing its
    lock, so this is safe for tests and single-threaded use.

    Example:
        >>> publisher = TranscriptPublisher(verbose=True)
        >>> publisher.subscribe(window)
        >>> publisher.start()
        >>> publisher.publish("hello world")  # window.on_transcript_changed runs on dispatch thread
    """

    _STOP = object()

    def __init__(self, verbose: bool = False) -> None:
        """
        Args:
            verbose: Enable verbose logging for subscription events
        """
        self._subscribers: List['TranscriptSubscriber'] = []
        self._lock: threading.Lock = threading.Lock()
        self._verbose: bool = verbose
        self._queue: queue.Queue = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        # Serializes delivery so the revision check and the callbacks stay in order
        self._deliver_lock = threading.RLock()
        self._last_revision: int = 0

    def subscribe(self, subscriber: 'TranscriptSubscriber') -> None:
        """Register a subscriber for transcript events.

        Thread-safe and idempotent.

        Args:
            subscriber: Object implementing TranscriptSubscriber protocol
        """
        with self._lock:
            if subscriber not in self._subscribers:
                self._subscribers.append(subscriber)
                if self._verbose:
                    logging.info(f"Subscriber registered: {subscriber.__class__.__name__}")

    def unsubscribe(self, subscriber: 'TranscriptSubscriber') -> None:
        """Unregister a subscriber. Unregistering a non-existent subscriber is a no-op."""
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)
                if self._verbose:
                    logging.info(f"Subscriber unregistered: {subscriber.__class__.__name__}")

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def is_dispatching(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the dispatch thread. Calling start() twice has no effect."""
        if self.is_dispatching():
            return
        self._thread = threading.Thread(target=self._dispatch_loop, name="TranscriptPublisher", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """Deliver queued notifications, then stop the dispatch thread."""
        thread = self._thread
        if thread is None:
            return
        self._queue.put(self._STOP)
        thread.join(timeout=timeout)
        self._thread = None

    def publish(self, text: str, revision: Optional[int] = None) -> None:
        """Publish the full transcript to all subscribers.

        Args:
            text: Complete current transcript
            revision: Monotonic history revision; None is always delivered
        """
        if self.is_dispatching():
            self._queue.put((text, revision))
        else:
            self._deliver(text, revision)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued notification has been delivered.

        Args:
            timeout: Maximum seconds to wait, None waits indefinitely

        Returns:
            True if the queue drained in time
        """
        if not self.is_dispatching():
            return True
        done = threading.Event()
        self._queue.put(done)
        return done.wait(timeout)

    def _dispatch_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._STOP:
                break
            if isinstance(item, threading.Event):
                item.set()
                continue
            self._deliver(*item)

    def _deliver(self, text: str, revision: Optional[int] = None) -> None:
        with self._deliver_lock:
            if revision is not None:
                if revision < self._last_revision:
                    if self._verbose:
                        logging.debug(f"TranscriptPublisher: dropped stale revision {revision} < {self._last_revision}")
                    return
                self._last_revision = revision

            with self._lock:
                subscribers = list(self._subscribers)

            for subscriber in subscribers:
                try:
                    subscriber.on_transcript_changed(text)
                except Exception as e:
                    logging.error(
                        f"Subscriber {subscriber.__class__.__name__} failed on_transcript_changed: {e}",
                        exc_info=True
                    )
