# captionmirror/__init__.py
from .CaptureState import CaptureState
from .LiveTranscriptService import LiveTranscriptService
from .ReconcilerConfig import ReconcilerConfig
from .TranscriptPublisher import TranscriptPublisher
from .reconcile.OverlapMatcher import OverlapMatcher
from .reconcile.SnapshotNormalizer import SnapshotNormalizer

__all__ = [
    'CaptureState',
    'LiveTranscriptService',
    'ReconcilerConfig',
    'TranscriptPublisher',
    'OverlapMatcher',
    'SnapshotNormalizer'
]
