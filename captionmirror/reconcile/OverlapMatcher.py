# captionmirror/reconcile/OverlapMatcher.py
import logging
from typing import Optional

from ..types import DeltaMatch, MatchCase


DEFAULT_PROBE_CHARS = 400
DEFAULT_MIN_OVERLAP_CHARS = 24


class OverlapMatcher:
    """Decides which part of a new caption snapshot is genuinely new.

    The caption surface offers no diff protocol: only two full-text
    snapshots are available, the previous one (the mirror) and the current
    one. The source buffer is bounded, so between two reads it may append
    text, correct its tail, and silently drop its oldest lines.

    Strategies are evaluated in order and the first match wins:
    1. Pure append - current starts with previous.
    2. Head alignment - a suffix of previous' tail equals a prefix of
       current's head (the source dropped its head and kept appending).
    3. Anywhere anchor - a suffix of previous occurs somewhere in current
       (head dropped and text inserted before the continuation point).
    4. No confident match - nothing is appended.

    Strategies 2 and 3 only look at probe_chars characters of each side, so the
    work per comparison is bounded regardless of history size.

    Args:
        probe_chars: Window size for the tail/head comparison
        min_overlap_chars: Shortest shared region trusted as alignment
        verbose: Enable verbose logging
    """

    def __init__(self,
                 probe_chars: int = DEFAULT_PROBE_CHARS,
                 min_overlap_chars: int = DEFAULT_MIN_OVERLAP_CHARS,
                 verbose: bool = False
                 ) -> None:
        if min_overlap_chars < 1:
            raise ValueError(f"min_overlap_chars must be >= 1, got {min_overlap_chars}")
        if probe_chars < min_overlap_chars:
            raise ValueError(
                f"probe_chars ({probe_chars}) must be >= min_overlap_chars ({min_overlap_chars})"
            )
        self.probe_chars: int = probe_chars
        self.min_overlap_chars: int = min_overlap_chars
        self.verbose: bool = verbose

    def compute_delta(self, prev_snapshot: Optional[str], curr_snapshot: Optional[str]) -> str:
        """Return the suffix of curr_snapshot that should be appended to history.

        Args:
            prev_snapshot: Previous normalized snapshot (the mirror)
            curr_snapshot: Current normalized snapshot

        Returns:
            Newly visible text, empty string when nothing trustworthy is new
        """
        return self.match(prev_snapshot, curr_snapshot).delta

    def match(self, prev_snapshot: Optional[str], curr_snapshot: Optional[str]) -> DeltaMatch:
        """Compare two snapshots and report the delta with the strategy that found it.

        Args:
            prev_snapshot: Previous normalized snapshot (the mirror)
            curr_snapshot: Current normalized snapshot

        Returns:
            DeltaMatch with delta text, strategy, overlap length and position
        """
        prev = prev_snapshot or ""
        curr = curr_snapshot or ""

        if curr.startswith(prev):
            return DeltaMatch(delta=curr[len(prev):], case=MatchCase.APPEND,
                              overlap=len(prev), position=0)

        overlap = self.head_alignment_length(prev, curr)
        if self.min_overlap_chars <= overlap < len(curr):
            if self.verbose:
                logging.debug(f"OverlapMatcher: head alignment, overlap={overlap}")
            return DeltaMatch(delta=curr[overlap:], case=MatchCase.HEAD_ALIGNMENT,
                              overlap=overlap, position=0)

        idx, k = self.find_anchor(prev, curr)
        if idx >= 0:
            if self.verbose:
                logging.debug(f"OverlapMatcher: anchor k={k} found at idx={idx}")
            return DeltaMatch(delta=curr[idx + k:], case=MatchCase.ANCHOR,
                              overlap=k, position=idx)

        if self.verbose:
            logging.debug(
                f"OverlapMatcher: no confident match (prev={len(prev)}, curr={len(curr)})"
            )
        return DeltaMatch(delta="", case=MatchCase.NO_MATCH)

    def head_alignment_length(self, prev: str, curr: str) -> int:
        """Longest string that is a suffix of prev's tail window and a prefix of curr's head window.

        Only lengths >= min_overlap_chars are considered; shorter overlaps
        report 0 because they are never trusted.

        Args:
            prev: Previous snapshot
            curr: Current snapshot

        Returns:
            Overlap length, or 0 if none reaches min_overlap_chars
        """
        tail = prev[-self.probe_chars:] if prev else ""
        head = curr[:self.probe_chars]

        # Descending, so the first hit is the longest
        for length in range(min(len(tail), len(head)), self.min_overlap_chars - 1, -1):
            if tail.endswith(head[:length]):
                return length
        return 0

    def find_anchor(self, prev: str, curr: str) -> tuple[int, int]:
        """Find the longest suffix of prev that occurs anywhere in curr.

        Args:
            prev: Previous snapshot
            curr: Current snapshot

        Returns:
            Tuple of (index_in_curr, anchor_length), (-1, 0) if not found
        """
        max_k = min(self.probe_chars, len(prev), len(curr))
        for k in range(max_k, self.min_overlap_chars - 1, -1):
            idx = curr.find(prev[-k:])
            if idx >= 0:
                return idx, k
        return -1, 0
