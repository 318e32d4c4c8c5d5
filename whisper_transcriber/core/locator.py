"""Active-segment lookup for playback synchronisation.

WHY: While audio plays, the transcript view highlights the chunk being
spoken. Chunks may lack an end time (the backend's last chunk often does),
so "which chunk contains t" needs an explicit fallback rule.

HOW: A chunk's effective end is its own end time, else the next chunk's
start, else +infinity. A chunk is active when start <= t < effective end.
Both functions are pure and cheap enough to call on every time update.

RULES:
- At most one index is returned (the first match)
- A gap between a known end and the next start has no active chunk
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

from whisper_transcriber.core.ir import Chunk


def effective_end(chunks: Sequence[Chunk], index: int) -> float:
    chunk = chunks[index]
    if chunk.end_time is not None:
        return chunk.end_time
    if index + 1 < len(chunks):
        return chunks[index + 1].start_time
    return math.inf


def find_active_index(chunks: Sequence[Chunk], current_time: float) -> Optional[int]:
    """Return the index of the chunk playing at ``current_time``, or None."""
    for index, chunk in enumerate(chunks):
        if chunk.start_time <= current_time < effective_end(chunks, index):
            return index
    return None


def format_audio_timestamp(seconds: float) -> str:
    """Row label for a chunk start: ``MM:SS``, or ``HH:MM:SS`` past one hour."""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return "{:02d}:{:02d}:{:02d}".format(hours, minutes, secs)
    return "{:02d}:{:02d}".format(minutes, secs)
