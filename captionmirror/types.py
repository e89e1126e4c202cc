"""Type definitions for the caption reconciliation pipeline."""

from dataclasses import dataclass
from enum import Enum


class MatchCase(Enum):
    """Which overlap strategy produced a delta.

    Evaluated in declaration order, first match wins:
    - APPEND: current snapshot starts with the previous one
    - HEAD_ALIGNMENT: tail of previous equals head of current (source dropped its head)
    - ANCHOR: tail of previous found somewhere inside current (head dropped and text corrected)
    - NO_MATCH: nothing trustworthy to add
    """
    APPEND = 'append'
    HEAD_ALIGNMENT = 'head_alignment'
    ANCHOR = 'anchor'
    NO_MATCH = 'no_match'


@dataclass(frozen=True)
class DeltaMatch:
    """Result of comparing two normalized snapshots.

    Attributes:
        delta: Text to append to history (may be empty)
        case: Strategy that decided the delta
        overlap: Length of the shared region used for alignment
        position: Index in the current snapshot where the shared region starts
    """
    delta: str
    case: MatchCase
    overlap: int = 0
    position: int = 0


@dataclass(frozen=True)
class TickResult:
    """Outcome of a single reconciliation tick.

    status values:
    - 'skipped': tick not run (not running, or another tick in flight)
    - 'read_failed': snapshot source raised or timed out
    - 'empty': snapshot normalized to an empty string; mirror kept
    - 'unchanged': snapshot identical to the mirror
    - 'matched': matcher ran; appended is the text added to history (may be empty)
    - 'error': matching or appending raised; mirror still advanced
    """
    status: str
    appended: str = ''
    case: MatchCase = MatchCase.NO_MATCH
    evicted: int = 0

    @property
    def changed(self) -> bool:
        return self.status == 'matched' and bool(self.appended)
