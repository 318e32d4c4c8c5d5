"""Core data model and pure helpers.

WHY: The core package holds what every other layer depends on — the IR
dataclasses, the mono downmixer, the download-progress tracker and the
active-segment locator. None of it touches the backend.

HOW: ir.py defines the data structures, audio.py decodes and downmixes,
progress.py tracks model downloads, locator.py maps playback time to a chunk.

RULES:
- IR dataclasses are the contract — change with care
- Everything here is synchronous and free of backend knowledge
"""

from whisper_transcriber.core.ir import Chunk, ProgressItem, Transcript, TranscriptResult

__all__ = ["Chunk", "ProgressItem", "Transcript", "TranscriptResult"]
