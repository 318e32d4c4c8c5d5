"""JSON chunk-list formatter and its parser.

WHY: The JSON export is the lossless format — it keeps every chunk's raw
text and both timestamps (including a missing end as ``null``) so the
transcript can be re-imported, re-exported, or replayed later.

HOW: The chunk list is serialised in the backend's wire shape with
two-space indentation. The default pretty printer puts each timestamp
element on its own line; a regex pass folds ``"timestamp"`` arrays back
onto one line (``"timestamp": [1.5, 2.0]``) for readability.
chunks_from_json() is the inverse.

RULES:
- Output is always valid JSON (an empty transcript is ``[]``)
- Output suffix: ".json"; media type: "application/json"
- The shape is described by schemas/chunks.schema.json
"""

from __future__ import annotations

import json
import re
from typing import List

from whisper_transcriber.core.ir import Chunk, Transcript
from whisper_transcriber.formatters.base import BaseFormatter, FormatterOutput

# Matches a pretty-printed two-element timestamp array spanning several lines.
_TIMESTAMP_RE = re.compile(r'("timestamp": )\[\s+(\S+)\s+(\S+)\s+\]')


def chunks_to_json(chunks: List[Chunk]) -> str:
    text = json.dumps([chunk.to_wire() for chunk in chunks], indent=2, ensure_ascii=False)
    return _TIMESTAMP_RE.sub(r"\1[\2 \3]", text)


def chunks_from_json(text: str) -> List[Chunk]:
    """Parse a JSON export back into chunks.

    Raises:
        ValueError: The document is not a list of chunk objects.
    """
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of chunks, got {}".format(type(data).__name__))
    try:
        return [Chunk.from_wire(item) for item in data]
    except (KeyError, IndexError, TypeError) as exc:
        raise ValueError("Malformed chunk in JSON transcript: {}".format(exc)) from exc


class JSONChunksFormatter(BaseFormatter):
    """Formatter that writes the chunk list as compact-timestamp JSON."""

    @property
    def name(self) -> str:
        return "JSON"

    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        return [
            FormatterOutput(
                suffix=".json",
                content=chunks_to_json(transcript.chunks),
                media_type="application/json",
            )
        ]
