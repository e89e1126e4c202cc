# captionmirror/history/DeltaCursor.py
from .TranscriptHistory import TranscriptHistory


class DeltaCursor:
    """Tracks how much of the history a downstream consumer has taken.

    Invariant: 0 <= position <= len(history).

    The first unsent-delta query after a reset snaps the cursor to the end
    of history and returns nothing, so whatever was already on screen when
    capture started is never reported as new.

    Args:
        history: TranscriptHistory the cursor points into
    """

    def __init__(self, history: TranscriptHistory) -> None:
        self._history = history
        self.position: int = 0
        self.baseline_snapped: bool = False

    def get_unsent(self) -> str:
        """Return history[position:], snapping the baseline on the first call.

        Returns:
            Unsent tail of the history, empty if nothing is pending
        """
        if not self.baseline_snapped:
            self.snap_baseline()
            return ''
        return self._history.tail(self.position)

    def snap_baseline(self) -> None:
        """Mark everything currently in history as already delivered."""
        self.position = len(self._history)
        self.baseline_snapped = True

    def mark_sent(self) -> None:
        """Move the cursor to the end of history. Idempotent."""
        self.position = len(self._history)

    def shift(self, evicted: int) -> None:
        """Follow a front eviction of `evicted` characters."""
        if evicted <= 0:
            return
        self.position = max(0, self.position - evicted)

    def reset(self) -> None:
        self.position = 0
        self.baseline_snapped = False
