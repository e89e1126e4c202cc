"""Protocol definitions for caption mirror components.

This module defines structural interfaces using Python's Protocol for duck typing.
"""

from typing import Callable, Optional, Protocol


TextChangedHandler = Callable[[], None]


class SnapshotSource(Protocol):
    """Supplies the current raw text of the watched caption surface.

    Implementations wrap a platform-specific reader (UI automation, browser
    DOM observer, a file another process rewrites, a scripted list in tests).
    Nothing may be assumed about how one read relates to the previous one.

    Thread Safety:
        read_current_text() is called from the service worker threads.
        The text-changed handler may be invoked from any thread.
    """

    def attach(self) -> bool:
        """Connect to the underlying surface.

        Returns:
            True if the surface is available and reads can start
        """
        ...

    def detach(self) -> None:
        """Release the surface and stop emitting change signals."""
        ...

    def read_current_text(self) -> str:
        """Return the verbatim text currently visible.

        Raises:
            Exception: any failure; the caller treats it as a skipped tick
        """
        ...

    def set_text_changed_handler(self, handler: Optional[TextChangedHandler]) -> None:
        """Register (or clear with None) a callback fired when the text may have changed."""
        ...


class TranscriptSubscriber(Protocol):
    """Receives the full transcript each time history changes.

    Thread Safety:
        Called from the publisher dispatch thread, never while the service
        lock is held, so implementations may call back into the service.
    """

    def on_transcript_changed(self, text: str) -> None:
        """Handle a history update.

        Args:
            text: Complete current transcript (not just the delta)
        """
        ...
