"""Tracker for in-flight model-asset downloads.

WHY: Before the first transcription the backend downloads several model
files (weights, tokenizer, config). Each one reports start, progress and
completion separately, and messages for different files interleave.

HOW: A dict keyed by ``file``. Insertion order is kept only so display is
stable; no caller relies on it.

RULES:
- update_progress() on an unknown key is a no-op (a late progress message
  may arrive after the file's "done")
- Only the progress field is touched by update_progress()
- remove() on an unknown key is a no-op
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from whisper_transcriber.core.ir import ProgressItem

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Keyed collection of ProgressItem objects."""

    def __init__(self) -> None:
        self._items: Dict[str, ProgressItem] = {}

    def add(self, item: ProgressItem) -> None:
        """Start tracking a download, replacing any item with the same file."""
        self._items[item.file] = item

    def update_progress(self, file: str, progress: float) -> bool:
        """Set the progress of a tracked file.

        Returns:
            True if an item was updated, False if ``file`` is not tracked.
        """
        item = self._items.get(file)
        if item is None:
            logger.debug("Ignoring progress for untracked file %s", file)
            return False
        item.progress = progress
        return True

    def remove(self, file: str) -> Optional[ProgressItem]:
        return self._items.pop(file, None)

    def get(self, file: str) -> Optional[ProgressItem]:
        return self._items.get(file)

    def clear(self) -> None:
        self._items.clear()

    def items(self) -> List[ProgressItem]:
        """Snapshot of tracked items (a new list)."""
        return list(self._items.values())

    def overall_progress(self) -> float:
        """Mean progress (0-100) across tracked downloads, 0.0 when idle."""
        if not self._items:
            return 0.0
        return sum(item.progress for item in self._items.values()) / len(self._items)

    def __contains__(self, file: object) -> bool:
        return file in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ProgressItem]:
        return iter(self.items())
