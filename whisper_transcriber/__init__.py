"""Whisper Transcriber — timestamped transcription with caption export.

WHY: A speech-recognition backend produces timestamped text chunks, but
editors, media players, and lyric-sync tools each want a different file
format. This package drives a transcription job against an off-thread
inference backend and turns the finished chunk list into TXT, JSON, SRT,
LRC and TTML files.

HOW: Three layers — the job controller (lifecycle, progress, message
protocol with the backend), the chunk IR, and pluggable formatters. An
active-segment locator maps playback position to the highlighted chunk.

RULES:
- All formatters consume the same Transcript IR
- Adding a new output format = one new formatter module, no core changes
- The backend is an external collaborator reached only through typed messages
"""

__version__ = "0.1.0"
