"""History subsystem - capped transcript buffer and consumer cursor."""
from captionmirror.history.TranscriptHistory import TranscriptHistory
from captionmirror.history.DeltaCursor import DeltaCursor

__all__ = ['TranscriptHistory', 'DeltaCursor']
