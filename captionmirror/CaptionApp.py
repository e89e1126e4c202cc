import signal
import sys
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .CaptureState import CaptureState
from .FrameLogger import FrameLogger
from .LiveTranscriptService import LiveTranscriptService
from .ReconcilerConfig import ReconcilerConfig, load_config
from .TranscriptPublisher import TranscriptPublisher
from .hotkey.DeltaHotkeyListener import DeltaHotkeyListener
from .sources.FileSnapshotSource import FileSnapshotSource
from .sources.PushSnapshotSource import PushSnapshotSource


def create_snapshot_source(source_config: Dict, base_dir: Path, verbose: bool = False):
    """Build the snapshot source described by the "source" config section.

    Args:
        source_config: {"type": "file" | "push", ...}
        base_dir: Directory relative file paths are resolved against
        verbose: Enable verbose logging

    Raises:
        ValueError: for an unknown source type
    """
    source_type = source_config.get('type', 'file')
    if source_type == 'file':
        path = Path(source_config.get('path', 'captions.txt'))
        if not path.is_absolute():
            path = base_dir / path
        return FileSnapshotSource(
            path,
            encoding=source_config.get('encoding', 'utf-8'),
            watch_interval=source_config.get('watch_interval_ms', 250) / 1000.0,
            verbose=verbose
        )
    if source_type == 'push':
        return PushSnapshotSource(verbose=verbose)
    raise ValueError(f"Unknown snapshot source type: {source_type}")


class HeadlessDeltaPrinter:
    """Prints each harvested delta to a stream as the transcript grows.

    Implements TranscriptSubscriber protocol (structural typing).
    """

    def __init__(self, service: LiveTranscriptService, stream=None) -> None:
        self._service = service
        self._stream = stream if stream is not None else sys.stdout

    def on_transcript_changed(self, text: str) -> None:
        delta = self._service.get_delta_and_advance()
        if delta.strip():
            self._stream.write(delta)
            self._stream.flush()


class CaptionApp:
    """Wires the caption mirror together from a configuration file.

    Creates the snapshot source, publisher, frame logger and
    LiveTranscriptService, then either opens the tkinter viewer or runs
    headless, printing deltas to stdout.

    Args:
        config_path: Path to caption_config.json
        logs_dir: Directory for the frame log
        source_path: Overrides the file source path from the config
        headless: Run without GUI
        verbose: Enable verbose logging
    """

    def __init__(self,
                 config_path: Union[str, Path],
                 logs_dir: Optional[Path] = None,
                 source_path: Optional[str] = None,
                 headless: bool = False,
                 verbose: bool = False
                 ) -> None:
        self.config: Dict = load_config(config_path)
        self.verbose: bool = verbose
        self.headless: bool = headless
        self._is_stopped: bool = False
        self._stop_event = threading.Event()

        source_config = dict(self.config.get('source', {}))
        if source_path:
            source_config.update({'type': 'file', 'path': source_path})
        self.source = create_snapshot_source(source_config, Path(config_path).parent, verbose=verbose)

        diagnostics = self.config.get('diagnostics', {})
        frame_log_file = None
        if logs_dir is not None:
            frame_log_file = Path(logs_dir) / diagnostics.get('frame_log_file', 'frames.log')
        self.frame_logger = FrameLogger(
            log_file=frame_log_file,
            enabled=diagnostics.get('frame_log_enabled', False)
        )

        self.capture_state = CaptureState()
        self.publisher = TranscriptPublisher(verbose=verbose)
        self.service = LiveTranscriptService(
            source=self.source,
            publisher=self.publisher,
            config=ReconcilerConfig.from_dict(self.config.get('reconciler')),
            capture_state=self.capture_state,
            frame_logger=self.frame_logger,
            verbose=verbose
        )

        self.root = None
        self.window = None
        self.hotkey_listener: Optional[DeltaHotkeyListener] = None

    def _setup_gui(self) -> None:
        from .gui.TranscriptWindow import create_transcript_window
        self.root, self.window = create_transcript_window(self.service, self.config, verbose=self.verbose)

    def _setup_hotkey(self) -> None:
        hotkey_config = self.config.get('hotkey', {})
        if not hotkey_config.get('enabled', False):
            return

        if self.window is not None:
            callback = self.window.request_copy_delta
        else:
            callback = self._log_delta
        self.hotkey_listener = DeltaHotkeyListener(
            hotkey=hotkey_config.get('harvest', 'ctrl+shift+/'),
            callback=callback,
            verbose=self.verbose
        )
        try:
            self.hotkey_listener.start()
        except Exception as e:
            # No keyboard backend (e.g. headless Linux without X)
            logging.warning(f"Global hotkey unavailable: {e}")
            self.hotkey_listener = None

    def _log_delta(self) -> None:
        delta = self.service.get_delta_and_advance()
        if delta.strip():
            logging.info(f"Harvested delta: {delta!r}")

    def start(self) -> bool:
        self.publisher.start()
        if self.headless:
            self.publisher.subscribe(HeadlessDeltaPrinter(self.service))
        started = self.service.start()
        if not started:
            logging.warning("Caption source not available; start capture from the window once it is")
        return started

    def stop(self) -> None:
        """Stop capture, hotkey and notification dispatch."""
        if self._is_stopped:
            return
        self._is_stopped = True

        logging.info("Stopping caption mirror...")
        if self.hotkey_listener is not None:
            self.hotkey_listener.stop()
        self.service.close()
        self.publisher.stop()
        self._stop_event.set()
        logging.info("Caption mirror stopped.")

    def run(self) -> None:
        if not self.headless:
            self._setup_gui()
        self._setup_hotkey()

        started = self.start()
        if self.headless and not started:
            self.stop()
            raise RuntimeError("Caption source not available")

        def signal_handler(sig: int, frame: Any) -> None:
            self.stop()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)

        if self.headless:
            try:
                while not self._stop_event.wait(0.5):
                    pass
            except KeyboardInterrupt:
                pass
            finally:
                self.stop()
            return

        import tkinter as tk

        def on_window_close() -> None:
            self.stop()
            try:
                self.root.destroy()
            except tk.TclError:
                pass

        self.root.protocol("WM_DELETE_WINDOW", on_window_close)
        try:
            self.root.mainloop()
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()
