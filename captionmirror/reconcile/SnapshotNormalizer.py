# captionmirror/reconcile/SnapshotNormalizer.py
from typing import Dict, Optional


class SnapshotNormalizer:
    """Canonicalizes raw caption snapshots before they are compared.

    Only changes that never alter visible content are applied, so the
    normalized text can be appended to history verbatim:
    line endings are unified and invisible code points are removed.
    Spacing, case and punctuation are kept exactly as rendered.
    """

    def __init__(self):
        """Initialize the translation table of invisible characters to strip."""
        self.invisible_chars: Dict[str, str] = {
            '\u200b': 'zero-width space',
            '\u200c': 'zero-width non-joiner',
            '\u200d': 'zero-width joiner',
            '\ufeff': 'byte-order mark',
            '\u00ad': 'soft hyphen',
        }
        self._strip_table = str.maketrans({char: None for char in self.invisible_chars})

    def normalize_text(self, text: Optional[str]) -> str:
        """Normalize a raw snapshot.

        Performs the following steps:
        1. CRLF and lone CR become LF
        2. Invisible characters are removed

        Args:
            text: Raw snapshot, may be None

        Returns:
            Normalized snapshot, empty string for empty or None input
        """
        if not text:
            return ""

        # Step 1: CRLF first so it doesn't turn into two newlines
        unified = text.replace('\r\n', '\n').replace('\r', '\n')

        # Step 2: Invisible characters
        return unified.translate(self._strip_table)
