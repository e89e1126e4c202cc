# captionmirror/history/TranscriptHistory.py
from typing import List


DEFAULT_MAX_HISTORY_CHARS = 20_000_000
DEFAULT_KEEP_RATIO = 0.9


class TranscriptHistory:
    """Append-only buffer holding the reconciled transcript.

    Appends are stored as chunks and joined lazily, so appending is
    O(len(delta)) and repeated reads of an unchanged history reuse the
    cached string. Once the length passes max_chars the oldest text is
    dropped, keeping the most recent keep_ratio * max_chars characters.

    Not thread-safe on its own: LiveTranscriptService guards it together
    with the DeltaCursor under a single lock, so eviction and the cursor
    shift are applied atomically.

    Args:
        max_chars: Hard cap that triggers front eviction
        keep_ratio: Fraction of max_chars retained after eviction
    """

    def __init__(self,
                 max_chars: int = DEFAULT_MAX_HISTORY_CHARS,
                 keep_ratio: float = DEFAULT_KEEP_RATIO
                 ) -> None:
        if max_chars < 1:
            raise ValueError(f"max_chars must be >= 1, got {max_chars}")
        if not 0.0 < keep_ratio < 1.0:
            raise ValueError(f"keep_ratio must be between 0 and 1, got {keep_ratio}")
        self.max_chars: int = max_chars
        self.keep_ratio: float = keep_ratio
        self._chunks: List[str] = []
        self._length: int = 0

    def __len__(self) -> int:
        return self._length

    def append(self, delta: str) -> None:
        """Append text to the end of the history.

        Args:
            delta: Text to append; empty strings are ignored
        """
        if not delta:
            return
        self._chunks.append(delta)
        self._length += len(delta)

    def text(self) -> str:
        """Return the full history as a single string."""
        if len(self._chunks) > 1:
            self._chunks = [''.join(self._chunks)]
        return self._chunks[0] if self._chunks else ''

    def tail(self, start: int) -> str:
        """Return history[start:], empty if start is at or past the end."""
        if start >= self._length:
            return ''
        return self.text()[max(0, start):]

    def needs_eviction(self) -> bool:
        return self._length > self.max_chars

    def evict_front(self, keep_ratio: float = None) -> int:
        """Drop the oldest text, keeping the most recent keep_ratio * max_chars characters.

        Args:
            keep_ratio: Override for the configured keep ratio

        Returns:
            Number of characters removed from the front (0 if nothing was removed)
        """
        ratio = self.keep_ratio if keep_ratio is None else keep_ratio
        keep = int(self.max_chars * ratio)
        evicted = self._length - keep
        if evicted <= 0:
            return 0

        self._chunks = [self.text()[evicted:]]
        self._length = keep
        return evicted

    def enforce_cap(self) -> int:
        """Evict from the front only if the hard cap is exceeded.

        Returns:
            Number of characters removed
        """
        if not self.needs_eviction():
            return 0
        return self.evict_front()

    def clear(self) -> None:
        self._chunks = []
        self._length = 0
