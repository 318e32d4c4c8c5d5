"""Formatter interface, export artifact, and output naming.

WHY: Six export formats read the same finished chunk list. The CLI and
the job controller loop over them by registry key, so every format has to
look the same from the outside.

HOW: A formatter subclasses BaseFormatter (display ``name`` plus
``format()``) and returns FormatterOutput artifacts: suffix, text and
MIME type. base_filename() turns the audio source name into the stem the
suffix is appended to.

RULES:
- ``name`` and ``format()`` are both abstract
- ``format()`` returns a list — every current format produces one file,
  but the contract allows several
- ``suffix`` includes the extension, e.g. ``".srt"`` or ``"_alt.lrc"``
- Callers prepend the stem from base_filename(); formatters never see it
- Formatters are pure: same transcript in, same text out, no mutation
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from whisper_transcriber.config import DEFAULT_EXPORT_STEM
from whisper_transcriber.core.ir import Transcript

_EXTENSION_RE = re.compile(r"\.[^/.]+$")


def base_filename(source_name: Optional[str]) -> str:
    """Strip the last extension from ``source_name``.

    ``"interview.take1.mp3"`` → ``"interview.take1"``; None or empty falls
    back to ``"transcript"``.
    """
    if not source_name:
        return DEFAULT_EXPORT_STEM
    return _EXTENSION_RE.sub("", source_name) or DEFAULT_EXPORT_STEM


@dataclass
class FormatterOutput:
    """A single export artifact.

    Attributes:
        suffix: Appended to the filename stem, so ``".srt"`` with stem
                ``"interview"`` names ``"interview.srt"``.
        content: The file content as text.
        media_type: MIME type for the content, e.g. ``"application/x-subrip"``.
    """

    suffix: str
    content: str
    media_type: str

    def filename(self, stem: str) -> str:
        return stem + self.suffix

    def to_bytes(self) -> bytes:
        return self.content.encode("utf-8")


class BaseFormatter(ABC):
    """Common interface of the export formats.

    New formats live in their own module under formatters/ and are listed
    in FORMATTERS (formatters/__init__.py) under a short key.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'SRT Subtitles'."""

    @abstractmethod
    def format(self, transcript: Transcript) -> List[FormatterOutput]:
        """Render ``transcript``; must not modify it."""
