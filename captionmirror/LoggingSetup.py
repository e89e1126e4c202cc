# captionmirror/LoggingSetup.py
import sys
import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler


LOG_FILE_NAME = "captionmirror.log"
LOG_FORMAT = '[%(asctime)s] [%(levelname)s] %(message)s'
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def _use_utf8_console() -> None:
    # Captions are often non-ASCII; Windows consoles default to a legacy code page
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, 'reconfigure') and (stream.encoding or '').lower() != 'utf-8':
            stream.reconfigure(encoding='utf-8', errors='replace')


def setup_logging(logs_dir: Path, verbose: bool = False, is_frozen: bool = False) -> Path:
    """Route the root logger to logs_dir/captionmirror.log, and to stdout unless frozen.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output. Frame diagnostics use their own logger
    (see FrameLogger) and are not affected.

    Returns:
        Path of the application log file
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if verbose else logging.WARNING
    formatter = logging.Formatter(LOG_FORMAT)

    log_file = logs_dir / LOG_FILE_NAME
    handlers = [RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding='utf-8')]
    if not is_frozen:
        # Frozen GUI builds have no console
        _use_utf8_console()
        handlers.append(logging.StreamHandler(sys.stdout))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.info(f"Logging to {log_file} at {logging.getLevelName(level)}")
    return log_file
