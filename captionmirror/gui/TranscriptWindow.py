"""
TranscriptWindow - tkinter viewer for the mirrored transcript.

Re-renders the full transcript on every history update, shows the capture
state, and offers Start/Stop, Copy Delta and Clear actions.
"""
import threading
import logging
import tkinter as tk
from tkinter import scrolledtext, ttk
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from captionmirror.LiveTranscriptService import LiveTranscriptService


_STATUS_TEXT = {
    'idle': "Not capturing",
    'running': "Capturing live captions",
    'stopped': "Stopped",
}


class TranscriptWindow(ttk.Frame):
    """
    Main view. Subscribes to TranscriptPublisher and observes CaptureState.

    Implements TranscriptSubscriber protocol (structural typing).
    Updates coming from background threads are scheduled on the tkinter
    main loop with root.after().

    Attributes:
        service: LiveTranscriptService driving the view
        text_widget: Read-only transcript display
        status_label: Capture state / last action label
        start_button: Start/Stop toggle
        copy_button: Copies the unsent delta to the clipboard
        clear_button: Clears the transcript
    """

    def __init__(self, root: tk.Tk, service: 'LiveTranscriptService',
                 font_size: int = 15, verbose: bool = False):
        """
        Args:
            root: tkinter root window
            service: LiveTranscriptService instance
            font_size: Transcript font size
            verbose: Enable verbose logging
        """
        super().__init__(root)
        self.root = root
        self.service = service
        self.verbose = verbose

        toolbar = ttk.Frame(self)
        toolbar.pack(side=tk.TOP, fill=tk.X, pady=(0, 6))

        self.start_button = ttk.Button(toolbar, text='Start', command=self._on_start_stop_click)
        self.start_button.pack(side=tk.LEFT)
        self.copy_button = ttk.Button(toolbar, text='Copy Delta', command=self.copy_delta)
        self.copy_button.pack(side=tk.LEFT, padx=(6, 0))
        self.clear_button = ttk.Button(toolbar, text='Clear', command=self.service.clear)
        self.clear_button.pack(side=tk.LEFT, padx=(6, 0))

        self.status_label = ttk.Label(toolbar, text='')
        self.status_label.pack(side=tk.RIGHT)

        self.text_widget = scrolledtext.ScrolledText(
            self, wrap=tk.WORD, font=("Arial", font_size), state='disabled'
        )
        self.text_widget.pack(fill=tk.BOTH, expand=True)
        self.pack(fill=tk.BOTH, expand=True, padx=8, pady=8)

        self.service.capture_state.set_tk_root(root)
        self.service.capture_state.register_gui_observer(self._on_state_change)
        self.service.publisher.subscribe(self)
        self._update_for_state(self.service.capture_state.get_state())

    # ---------- Subscriber / observer ----------

    def on_transcript_changed(self, text: str) -> None:
        """Schedules the re-render on the main thread."""
        if threading.current_thread() is threading.main_thread():
            self.render(text)
        else:
            try:
                self.root.after(0, self.render, text)
            except RuntimeError:
                # Main loop gone during shutdown
                pass

    def render(self, text: str) -> None:
        """Must be called on main thread. Replaces the displayed transcript."""
        self.text_widget.config(state='normal')
        self.text_widget.delete('1.0', tk.END)
        self.text_widget.insert(tk.END, text)
        self.text_widget.config(state='disabled')
        self.text_widget.see(tk.END)

    def _on_state_change(self, old_state: str, new_state: str) -> None:
        self._update_for_state(new_state)

    def _update_for_state(self, state: str) -> None:
        self.start_button.config(text='Stop' if state == 'running' else 'Start', state='normal')
        self.status_label.config(text=_STATUS_TEXT.get(state, state))

    # ---------- Actions ----------

    def _on_start_stop_click(self) -> None:
        # Disabled until the state observer re-enables it
        self.start_button.config(state='disabled')
        if self.service.is_running():
            self.service.stop()
            return

        if not self.service.start():
            self.start_button.config(state='normal')
            self.status_label.config(text="Caption source not found")

    def copy_delta(self) -> str:
        """Copy the unsent delta to the clipboard and mark it sent.

        Returns:
            The copied text, empty if there was nothing new
        """
        delta = self.service.get_delta_and_advance()
        if not delta.strip():
            self.status_label.config(text="Nothing new")
            return ""

        self.root.clipboard_clear()
        self.root.clipboard_append(delta)
        self.status_label.config(text=f"Copied {len(delta)} chars")
        if self.verbose:
            logging.info(f"TranscriptWindow: copied delta ({len(delta)} chars)")
        return delta

    def request_copy_delta(self) -> None:
        """Thread-safe entry point for the global hotkey."""
        try:
            self.root.after(0, self.copy_delta)
        except RuntimeError:
            pass


def create_transcript_window(service: 'LiveTranscriptService', config: dict,
                             verbose: bool = False) -> tuple:
    """Create the root window and the transcript view.

    Args:
        service: LiveTranscriptService instance
        config: Application configuration (uses the "window" section)
        verbose: Enable verbose logging

    Returns:
        Tuple of (root, TranscriptWindow)
    """
    window_config = config.get('window', {})
    root = tk.Tk()
    root.title(window_config.get('title', "Caption Mirror"))
    root.geometry(f"{window_config.get('width', 680)}x{window_config.get('height', 650)}")

    view = TranscriptWindow(root, service, font_size=window_config.get('font_size', 15), verbose=verbose)
    return root, view
