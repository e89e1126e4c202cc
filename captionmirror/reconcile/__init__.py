"""Reconciliation subsystem - snapshot normalization and overlap matching."""
from captionmirror.reconcile.SnapshotNormalizer import SnapshotNormalizer
from captionmirror.reconcile.OverlapMatcher import OverlapMatcher

__all__ = ['SnapshotNormalizer', 'OverlapMatcher']
