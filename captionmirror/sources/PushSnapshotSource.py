import logging
import threading
from typing import Optional

from ..protocols import TextChangedHandler


class PushSnapshotSource:
    """Snapshot source fed by an external producer.

    Used where the platform reader delivers text through a callback rather
    than on demand: a browser page observing caption DOM mutations, or a
    native window-text reader that invokes a callback on every change.
    The producer calls push() with the full visible text; the service
    reads the latest value on its next tick.

    Args:
        require_initial_text: If True, attach() fails until something has been pushed
        verbose: Enable verbose logging
    """

    def __init__(self, require_initial_text: bool = False, verbose: bool = False) -> None:
        self._lock = threading.Lock()
        self._text: Optional[str] = None
        self._handler: Optional[TextChangedHandler] = None
        self._require_initial_text = require_initial_text
        self._verbose = verbose
        self._attached = False

    def attach(self) -> bool:
        with self._lock:
            if self._require_initial_text and self._text is None:
                return False
            self._attached = True
            return True

    def detach(self) -> None:
        with self._lock:
            self._attached = False

    def is_attached(self) -> bool:
        with self._lock:
            return self._attached

    def set_text_changed_handler(self, handler: Optional[TextChangedHandler]) -> None:
        with self._lock:
            self._handler = handler

    def push(self, text: Optional[str]) -> None:
        """Store the producer's current text and signal a change.

        Blank pushes are ignored, matching readers that report nothing
        while the caption surface is redrawing.

        Args:
            text: Full text currently visible on the caption surface
        """
        if not text or not text.strip():
            return

        with self._lock:
            changed = text != self._text
            self._text = text
            handler = self._handler if self._attached else None

        if changed and handler is not None:
            try:
                handler()
            except Exception as e:
                logging.error(f"PushSnapshotSource: change handler failed: {e}", exc_info=True)

    def read_current_text(self) -> str:
        with self._lock:
            if self._text is None:
                raise LookupError("no text pushed yet")
            return self._text
