"""Snapshot source adapters."""
from captionmirror.sources.ScriptedSnapshotSource import ScriptedSnapshotSource
from captionmirror.sources.PushSnapshotSource import PushSnapshotSource
from captionmirror.sources.FileSnapshotSource import FileSnapshotSource

__all__ = ['ScriptedSnapshotSource', 'PushSnapshotSource', 'FileSnapshotSource']
