"""State/store layer.

This package is the single source of truth for how incoming playback
updates are merged into the shared now-playing record, and for deciding
at read time whether that record is still fresh.
"""
