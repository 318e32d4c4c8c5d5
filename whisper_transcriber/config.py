"""Configuration constants, job defaults, and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. Model defaults, export heuristics, and the backend
import path are plain data — not buried in logic — so the CLI, the job
controller and the formatters agree on the same numbers.

HOW: python-dotenv loads the .env file on import. Constants are defined
as module-level values. Job defaults can be overridden via environment
variables of the same name.

RULES:
- SAMPLING_RATE is fixed: the backend expects 16 kHz mono audio
- Boolean env values are "true"/"false" (case-insensitive)
- WHISPER_BACKEND is an import path "module:attr", unset by default
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


# ---------------------------------------------------------------------------
# Audio
# ---------------------------------------------------------------------------

SAMPLING_RATE = 16000
"""Sample rate (Hz) of the mono buffer sent to the inference backend."""

# ---------------------------------------------------------------------------
# Job defaults
# ---------------------------------------------------------------------------

DEFAULT_MODEL = os.getenv("WHISPER_MODEL", "Xenova/whisper-tiny")
DEFAULT_SUBTASK = os.getenv("WHISPER_SUBTASK", "transcribe")
DEFAULT_LANGUAGE = os.getenv("WHISPER_LANGUAGE", "english")
DEFAULT_QUANTIZED = _env_flag("WHISPER_QUANTIZED", "false")
DEFAULT_MULTILINGUAL = _env_flag("WHISPER_MULTILINGUAL", "false")
DEFAULT_TIMESTAMP_GRANULARITY = os.getenv("WHISPER_TIMESTAMP_GRANULARITY", "segment")
DEFAULT_BACKEND = os.getenv("WHISPER_BACKEND") or None

SUBTASKS = ("transcribe", "translate")
AUTO_LANGUAGE = "auto"
"""Language sentinel meaning "let the model detect the language"."""

# ---------------------------------------------------------------------------
# Export heuristics
# ---------------------------------------------------------------------------

LRC_SILENCE_GAP_S = 4.0
"""Gap (seconds) after which the alternative LRC inserts an empty line."""

TTML_MAX_GAP_S = 0.3
TTML_MAX_LINE_CHARS = 60
SENTENCE_END_PUNCTUATION = (".", "?", "!")

DEFAULT_EXPORT_STEM = "transcript"
