# captionmirror/LiveTranscriptService.py
import queue
import threading
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, TYPE_CHECKING

from .CaptureState import CaptureState
from .FrameLogger import FrameLogger
from .ReconcilerConfig import ReconcilerConfig
from .TranscriptPublisher import TranscriptPublisher
from .history.DeltaCursor import DeltaCursor
from .history.TranscriptHistory import TranscriptHistory
from .reconcile.OverlapMatcher import OverlapMatcher
from .reconcile.SnapshotNormalizer import SnapshotNormalizer
from .types import MatchCase, TickResult

if TYPE_CHECKING:
    from captionmirror.protocols import SnapshotSource

logger = logging.getLogger(__name__)


class LiveTranscriptService:
    """Mirrors a volatile caption buffer into a stable, growing transcript.

    A worker thread ticks on a fixed interval, and immediately when the
    snapshot source signals that its text changed. Each tick reads the
    current snapshot, normalizes it, asks the OverlapMatcher what is new
    relative to the previous snapshot (the mirror), appends that to the
    history and publishes the full transcript.

    Consumers harvest new text with get_unsent_delta() / mark_delta_sent(),
    or get_delta_and_advance() which does both.

    Thread Safety:
        - One lock guards mirror, history, sent cursor and baseline flag
        - The lock is never held across a snapshot read, a frame log write
          or a subscriber callback
        - At most one tick runs at a time; a change signal arriving while a
          tick is in flight is dropped
        - Change signals go through a capacity-1 queue, extra signals are dropped
        - Snapshot reads run on a single reader thread with a timeout
        - Every payload carries a revision taken under the lock; the publisher
          drops payloads older than the last one it delivered
        - Capture state changes happen under the lifecycle lock, so state
          observers must not call start() or stop() synchronously

    Error Handling:
        - Read failures and timeouts skip the tick
        - Exceptions while matching or appending are logged; the mirror still advances
        - Consumer calls before start() are harmless no-ops

    Args:
        source: SnapshotSource supplying the raw caption text
        publisher: TranscriptPublisher for history-updated notifications
        config: ReconcilerConfig tunables
        capture_state: CaptureState to report idle/running/stopped
        frame_logger: Optional FrameLogger for per-tick diagnostics
        verbose: Enable verbose logging
    """

    def __init__(self,
                 source: 'SnapshotSource',
                 publisher: Optional[TranscriptPublisher] = None,
                 config: Optional[ReconcilerConfig] = None,
                 capture_state: Optional[CaptureState] = None,
                 frame_logger: Optional[FrameLogger] = None,
                 verbose: bool = False
                 ) -> None:
        self.source: 'SnapshotSource' = source
        self.config: ReconcilerConfig = config if config is not None else ReconcilerConfig()
        self.publisher: TranscriptPublisher = publisher if publisher is not None else TranscriptPublisher(verbose=verbose)
        self.capture_state: CaptureState = capture_state if capture_state is not None else CaptureState()
        self.frame_logger: FrameLogger = frame_logger if frame_logger is not None else FrameLogger()
        self.verbose: bool = verbose

        self.normalizer: SnapshotNormalizer = SnapshotNormalizer()
        self.matcher: OverlapMatcher = OverlapMatcher(
            probe_chars=self.config.probe_chars,
            min_overlap_chars=self.config.min_overlap_chars,
            verbose=verbose
        )

        # Guarded by _lock
        self._lock = threading.Lock()
        self._history = TranscriptHistory(
            max_chars=self.config.max_history_chars,
            keep_ratio=self.config.eviction_keep_ratio
        )
        self._cursor = DeltaCursor(self._history)
        self._mirror: str = ""
        self._frame: int = 0
        # Bumped on every history change; orders notifications
        self._revision: int = 0

        # Loop machinery
        self._lifecycle_lock = threading.Lock()
        self._tick_guard = threading.Lock()
        self._running = threading.Event()
        self._signal_queue: queue.Queue = queue.Queue(maxsize=1)
        self._thread: Optional[threading.Thread] = None
        self._reader: Optional[ThreadPoolExecutor] = None
        self._pending_read: Optional[Future] = None

    # ---------- Lifecycle ----------

    def start(self) -> bool:
        """Attach to the snapshot source and begin reconciliation.

        The text already on screen seeds the history and is marked as sent,
        so it is never reported as a new delta.

        Returns:
            True if running (or already running), False if no source is available
        """
        with self._lifecycle_lock:
            if self._running.is_set():
                return True

            try:
                attached = self.source.attach()
            except Exception as e:
                logger.error(f"LiveTranscriptService: attach failed: {e}", exc_info=True)
                attached = False
            if not attached:
                logger.warning("LiveTranscriptService: snapshot source not available")
                return False

            self._reader = ThreadPoolExecutor(max_workers=1, thread_name_prefix="SnapshotReader")
            self._pending_read = None
            try:
                initial = self.normalizer.normalize_text(self._read_snapshot())
            except Exception as e:
                logger.warning(f"LiveTranscriptService: initial read failed: {e}")
                initial = ""

            with self._lock:
                self._history.clear()
                self._history.append(initial)
                evicted = self._history.enforce_cap()
                self._mirror = initial
                self._cursor.reset()
                self._cursor.snap_baseline()
                self._frame = 0
                self._revision += 1
                revision = self._revision
                payload = self._history.text()
                history_length = len(self._history)
                sent_position = self._cursor.position

            self._drain_signals()
            self._running.set()
            self.source.set_text_changed_handler(self.request_tick)
            self._thread = threading.Thread(target=self._run, name="LiveTranscriptService", daemon=True)
            self._thread.start()
            self.capture_state.set_state('running')

        self.frame_logger.log_frame("START", 0, "init", initial, "", history_length, sent_position,
                                    details=f"evicted={evicted}")
        self.publisher.publish(payload, revision=revision)

        if self.verbose:
            logger.info(f"LiveTranscriptService: started, initial snapshot {len(initial)} chars")
        return True

    def stop(self) -> None:
        """Halt reconciliation. History and sent cursor are kept. Idempotent."""
        with self._lifecycle_lock:
            if not self._running.is_set():
                return

            self._running.clear()
            try:
                self.source.set_text_changed_handler(None)
            except Exception as e:
                logger.warning(f"LiveTranscriptService: failed to remove change handler: {e}")

            # Wake the loop; a full queue already wakes it
            try:
                self._signal_queue.put_nowait(None)
            except queue.Full:
                pass

            thread = self._thread
            self._thread = None
            if thread is not None and thread is not threading.current_thread():
                # In-flight tick is allowed to finish
                thread.join(timeout=self.config.read_timeout + self.config.poll_interval + 1.0)

            reader = self._reader
            self._reader = None
            self._pending_read = None
            if reader is not None:
                reader.shutdown(wait=False)

            try:
                self.source.detach()
            except Exception as e:
                logger.warning(f"LiveTranscriptService: detach failed: {e}")

            self.capture_state.set_state('stopped')

        if self.verbose:
            logger.info("LiveTranscriptService: stopped")

    def is_running(self) -> bool:
        return self._running.is_set()

    def close(self) -> None:
        """Stop reconciliation and release the frame log file."""
        self.stop()
        self.frame_logger.close()

    # ---------- Consumer API ----------

    def get_full_transcript(self) -> str:
        """Full reconciled transcript, regardless of the sent cursor."""
        with self._lock:
            return self._history.text()

    def get_unsent_delta(self) -> str:
        """Text appended since the last mark_delta_sent().

        The first call after start/clear returns "" and marks the current
        history as the baseline.
        """
        with self._lock:
            return self._cursor.get_unsent()

    def mark_delta_sent(self) -> None:
        """Mark the whole current history as delivered. Idempotent."""
        with self._lock:
            self._cursor.mark_sent()

    def get_delta_and_advance(self) -> str:
        """Return the unsent delta and mark it sent when it contains visible text.

        Whitespace-only deltas are returned but left pending, so they are
        delivered together with the next real text.
        """
        with self._lock:
            delta = self._cursor.get_unsent()
            if delta.strip():
                self._cursor.mark_sent()
            return delta

    def sent_position(self) -> int:
        with self._lock:
            return self._cursor.position

    def previous_snapshot(self) -> str:
        """The mirror: last normalized snapshot the loop processed."""
        with self._lock:
            return self._mirror

    def clear(self) -> None:
        """Empty the history and mirror, and reset the sent cursor and baseline."""
        with self._lock:
            self._history.clear()
            self._cursor.reset()
            self._mirror = ""
            self._frame = 0
            self._revision += 1
            revision = self._revision

        self.frame_logger.log_frame("CLEAR", 0, "clear", "", "", 0, 0, details="Buffers cleared")
        self.publisher.publish("", revision=revision)
        if self.verbose:
            logger.info("LiveTranscriptService: cleared")

    def set_frame_logging(self, enabled: bool) -> None:
        self.frame_logger.set_enabled(enabled)

    # ---------- Loop ----------

    def request_tick(self) -> None:
        """Ask for an out-of-band tick; called by the source when its text changes.

        Dropped when not running, when a tick is already in flight, or when
        a tick is already pending.
        """
        if not self._running.is_set() or self._tick_guard.locked():
            return
        try:
            self._signal_queue.put_nowait(True)
        except queue.Full:
            pass

    def _run(self) -> None:
        while self._running.is_set():
            try:
                self._signal_queue.get(timeout=self.config.poll_interval)
            except queue.Empty:
                pass

            if not self._running.is_set():
                break

            try:
                self.tick()
            except Exception as e:
                # tick() handles its own errors; this keeps the loop alive regardless
                logger.error(f"LiveTranscriptService: tick crashed: {e}", exc_info=True)

    def _drain_signals(self) -> None:
        while True:
            try:
                self._signal_queue.get_nowait()
            except queue.Empty:
                return

    def tick(self) -> TickResult:
        """Run one reconciliation step.

        Safe to call from any thread; concurrent calls are dropped while
        another tick is in flight.

        Returns:
            TickResult describing what happened
        """
        if not self._running.is_set():
            return TickResult(status='skipped')
        if not self._tick_guard.acquire(blocking=False):
            return TickResult(status='skipped')
        try:
            return self._tick()
        finally:
            self._tick_guard.release()

    def _tick(self) -> TickResult:
        try:
            raw = self._read_snapshot()
        except Exception as e:
            if self.verbose:
                logger.debug(f"LiveTranscriptService: read failed, skipping tick: {e!r}")
            return TickResult(status='read_failed')

        snapshot = self.normalizer.normalize_text(raw)
        if not snapshot:
            return TickResult(status='empty')

        payload: Optional[str] = None
        revision = 0
        with self._lock:
            if snapshot == self._mirror:
                return TickResult(status='unchanged')

            try:
                match = self.matcher.match(self._mirror, snapshot)
                evicted = 0
                if match.delta:
                    self._history.append(match.delta)
                    evicted = self._history.enforce_cap()
                    self._cursor.shift(evicted)
                    payload = self._history.text()
                    self._revision += 1
                    revision = self._revision
                result = TickResult(status='matched', appended=match.delta, case=match.case, evicted=evicted)
            except Exception as e:
                logger.error(f"LiveTranscriptService: reconciliation failed: {e}", exc_info=True)
                result = TickResult(status='error')
            finally:
                self._mirror = snapshot
                self._frame += 1

            frame = self._frame
            history_length = len(self._history)
            sent_position = self._cursor.position

        self.frame_logger.log_frame(
            "UPDATE", frame, result.case.value if result.status == 'matched' else result.status,
            snapshot, result.appended, history_length, sent_position,
            details=f"evicted={result.evicted}"
        )

        if payload is not None:
            self.publisher.publish(payload, revision=revision)
            if self.verbose and result.case is not MatchCase.APPEND:
                logger.info(f"LiveTranscriptService: {result.case.value} appended {len(result.appended)} chars")
        return result

    def _read_snapshot(self) -> str:
        """Read the source on the reader thread, bounded by read_timeout.

        Raises:
            TimeoutError: if the read (or a previous, still hanging read) exceeds read_timeout
            Exception: whatever the source raised
        """
        reader = self._reader
        if reader is None:
            raise RuntimeError("snapshot reader not started")

        pending = self._pending_read
        if pending is not None and not pending.done():
            raise TimeoutError("previous snapshot read still in flight")

        future = reader.submit(self.source.read_current_text)
        self._pending_read = future
        return future.result(timeout=self.config.read_timeout) or ""
