# captionmirror/FrameLogger.py
import logging
import threading
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


PREVIEW_LIMIT = 200


def preview(text: Optional[str]) -> str:
    """Single-line preview of a snapshot or delta, capped at PREVIEW_LIMIT chars."""
    if not text:
        return ""
    clean = text.replace("\r", "\\r").replace("\n", "\\n")
    return clean[:PREVIEW_LIMIT] + "..." if len(clean) > PREVIEW_LIMIT else clean


class FrameLogger:
    """Diagnostic log of every reconciliation frame.

    Writes one block per start/update/clear event to a dedicated rotating
    file, separate from the application log, so a misbehaving caption
    source can be replayed by reading what each snapshot looked like and
    which strategy handled it. Disabled by default; toggle at runtime with
    set_enabled().

    Args:
        log_file: Path of the frame log, None to log only to the logger's handlers
        enabled: Initial state
        logger_name: Name of the underlying logger (does not propagate to root)
    """

    def __init__(self,
                 log_file: Optional[Path] = None,
                 enabled: bool = False,
                 logger_name: str = "captionmirror.frames"
                 ) -> None:
        self._enabled: bool = enabled
        self._lock = threading.Lock()
        self.logger: logging.Logger = logging.getLogger(logger_name)
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        self._handler: Optional[RotatingFileHandler] = None

        if log_file is not None:
            log_file = Path(log_file)
            log_file.parent.mkdir(parents=True, exist_ok=True)
            self._handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=2,
                encoding='utf-8',
                delay=True
            )
            self._handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(self._handler)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    def log_frame(self, event: str, frame: int, case: str, snapshot: str,
                  appended: str, history_length: int, sent_position: int,
                  details: str = "") -> None:
        """Write one frame block if enabled.

        Args:
            event: START, UPDATE or CLEAR
            frame: Frame counter since start/clear
            case: Strategy or outcome that handled the frame
            snapshot: Normalized snapshot seen in this frame
            appended: Text appended to history in this frame
            history_length: History length after the frame
            sent_position: Sent cursor after the frame
            details: Free-form extra information
        """
        if not self._enabled:
            return

        lines = [
            f"=== {event} #{frame} - {datetime.now():%Y-%m-%d %H:%M:%S.%f} ===",
            f"Used: {case}",
            f"System len: {len(snapshot or '')}",
            f"System head: {preview(snapshot)}",
            f"History len: {history_length}",
            f"LastSentPos: {sent_position}",
            f"Appended len: {len(appended or '')}",
            f"Appended head: {preview(appended)}",
            f"Details: {details}",
            "",
        ]
        with self._lock:
            self.logger.info("\n".join(lines))

    def close(self) -> None:
        if self._handler is not None:
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None
