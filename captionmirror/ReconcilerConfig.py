# captionmirror/ReconcilerConfig.py
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class ReconcilerConfig:
    """Tunables for LiveTranscriptService.

    Attributes:
        poll_interval_ms: Timer period between ticks
        read_timeout_ms: Budget for one snapshot read; slower reads skip the tick
        probe_chars: Window size used by head alignment and anchor search
        min_overlap_chars: Shortest overlap trusted for alignment
        max_history_chars: Hard cap that triggers front eviction
        eviction_keep_ratio: Fraction of the cap retained after eviction
    """
    poll_interval_ms: int = 200
    read_timeout_ms: int = 1000
    probe_chars: int = 400
    min_overlap_chars: int = 24
    max_history_chars: int = 20_000_000
    eviction_keep_ratio: float = 0.9

    def __post_init__(self) -> None:
        if self.poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be > 0, got {self.poll_interval_ms}")
        if self.read_timeout_ms <= 0:
            raise ValueError(f"read_timeout_ms must be > 0, got {self.read_timeout_ms}")
        if self.min_overlap_chars < 1:
            raise ValueError(f"min_overlap_chars must be >= 1, got {self.min_overlap_chars}")
        if self.probe_chars < self.min_overlap_chars:
            raise ValueError(
                f"probe_chars ({self.probe_chars}) must be >= min_overlap_chars ({self.min_overlap_chars})"
            )
        if self.max_history_chars < 1:
            raise ValueError(f"max_history_chars must be >= 1, got {self.max_history_chars}")
        if not 0.0 < self.eviction_keep_ratio < 1.0:
            raise ValueError(f"eviction_keep_ratio must be between 0 and 1, got {self.eviction_keep_ratio}")

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def read_timeout(self) -> float:
        return self.read_timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, section: Optional[Dict[str, Any]]) -> 'ReconcilerConfig':
        """Build from the "reconciler" config section, unknown keys are ignored.

        Raises:
            ValueError: if a value is out of range
        """
        section = section or {}
        known = {name: section[name] for name in cls.__dataclass_fields__ if name in section}
        return cls(**known)


def load_config(config_path: Union[str, Path]) -> Dict:
    """Load configuration from JSON file.

    Args:
        config_path: Path to caption_config.json

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: if the file does not exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
