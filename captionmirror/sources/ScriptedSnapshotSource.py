import threading
from typing import Iterable, List, Optional, Union

from ..protocols import TextChangedHandler


ScriptEntry = Union[str, BaseException]


class ScriptedSnapshotSource:
    """Snapshot source replaying a fixed script of caption texts.

    Each read_current_text() returns the next entry. Entries that are
    exception instances are raised instead, to simulate a failing caption
    surface. Once the script is exhausted the last text keeps repeating,
    like a caption window that stopped changing.

    Args:
        script: Texts (or exceptions) returned by successive reads
        available: Result of attach()
    """

    def __init__(self, script: Iterable[ScriptEntry] = (), available: bool = True) -> None:
        self._script: List[ScriptEntry] = list(script)
        self._available = available
        self._lock = threading.Lock()
        self._index = 0
        self._last_text = ""
        self._handler: Optional[TextChangedHandler] = None
        self.attached = False
        self.read_count = 0

    def attach(self) -> bool:
        self.attached = self._available
        return self._available

    def detach(self) -> None:
        self.attached = False

    def set_text_changed_handler(self, handler: Optional[TextChangedHandler]) -> None:
        self._handler = handler

    def extend(self, *entries: ScriptEntry) -> None:
        """Append entries to the script and signal a change."""
        with self._lock:
            self._script.extend(entries)
        self.signal_changed()

    def signal_changed(self) -> None:
        handler = self._handler
        if handler is not None:
            handler()

    def read_current_text(self) -> str:
        with self._lock:
            self.read_count += 1
            if self._index >= len(self._script):
                return self._last_text
            entry = self._script[self._index]
            self._index += 1
            if isinstance(entry, BaseException):
                raise entry
            self._last_text = entry
            return entry
