import logging
import threading
from pathlib import Path
from typing import Optional, Union

from ..protocols import TextChangedHandler


class FileSnapshotSource:
    """Snapshot source backed by a text file another process keeps rewriting.

    Each read returns the whole file. A watcher thread polls the file's
    modification time and fires the text-changed handler when it moves,
    so updates are picked up before the next timer tick.

    Args:
        path: File holding the current caption text
        encoding: File encoding
        watch_interval: Seconds between stat() polls, 0 disables the watcher
        verbose: Enable verbose logging
    """

    def __init__(self,
                 path: Union[str, Path],
                 encoding: str = 'utf-8',
                 watch_interval: float = 0.25,
                 verbose: bool = False
                 ) -> None:
        self.path: Path = Path(path)
        self.encoding: str = encoding
        self.watch_interval: float = watch_interval
        self.verbose: bool = verbose
        self._handler: Optional[TextChangedHandler] = None
        self._watcher: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._last_mtime: float = 0.0

    def attach(self) -> bool:
        if not self.path.is_file():
            logging.warning(f"FileSnapshotSource: file not found: {self.path}")
            return False

        self._last_mtime = self._mtime()
        if self.watch_interval > 0 and self._watcher is None:
            # Fresh event per watcher
            self._stop_event = threading.Event()
            self._watcher = threading.Thread(target=self._watch, args=(self._stop_event,),
                                             name="FileSnapshotWatcher", daemon=True)
            self._watcher.start()

        if self.verbose:
            logging.info(f"FileSnapshotSource: attached to {self.path}")
        return True

    def detach(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        watcher = self._watcher
        self._watcher = None
        if watcher is not None and watcher is not threading.current_thread():
            watcher.join(timeout=self.watch_interval + 1.0)

    def set_text_changed_handler(self, handler: Optional[TextChangedHandler]) -> None:
        self._handler = handler

    def read_current_text(self) -> str:
        return self.path.read_text(encoding=self.encoding, errors='replace')

    def _mtime(self) -> float:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return 0.0

    def _watch(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.watch_interval):
            mtime = self._mtime()
            if mtime == self._last_mtime:
                continue
            self._last_mtime = mtime

            handler = self._handler
            if handler is None:
                continue
            try:
                handler()
            except Exception as e:
                logging.error(f"FileSnapshotSource: change handler failed: {e}", exc_info=True)
