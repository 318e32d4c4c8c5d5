"""Decoded audio buffers and the mono downmixer.

WHY: The inference backend accepts exactly one channel of 32-bit float
samples at 16 kHz. Uploaded audio is often stereo and at 44.1/48 kHz.

HOW: AudioBuffer holds channels-first float32 arrays. downmix() reduces
one or two channels to mono; load_audio() decodes a file with soundfile
and resamples each channel with scipy's polyphase resampler.

RULES:
- Mono input is passed through untouched (same array, no copy)
- Stereo is summed as sqrt(2) * (L + R) / 2 to keep perceived loudness
- Any other channel count raises UnsupportedChannelLayoutError; channels
  are never silently dropped
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import numpy as np
import soundfile as sf
from scipy.signal import resample_poly

from whisper_transcriber.config import SAMPLING_RATE

logger = logging.getLogger(__name__)

STEREO_SCALING_FACTOR = math.sqrt(2)


class UnsupportedChannelLayoutError(ValueError):
    """Raised when audio cannot be reduced to mono by downmix()."""


class AudioDecodeError(ValueError):
    """Raised when load_audio() cannot read a file as audio."""


@dataclass
class AudioBuffer:
    """Decoded multi-channel audio.

    Attributes:
        channels: One float32 array per channel, all of equal length.
        sample_rate: Samples per second of every channel.
    """

    channels: List[np.ndarray]
    sample_rate: int = SAMPLING_RATE

    @classmethod
    def from_samples(cls, channels: Sequence[Sequence[float]], sample_rate: int = SAMPLING_RATE) -> AudioBuffer:
        return cls(
            channels=[np.asarray(ch, dtype=np.float32) for ch in channels],
            sample_rate=sample_rate,
        )

    @property
    def number_of_channels(self) -> int:
        return len(self.channels)

    @property
    def length(self) -> int:
        """Samples per channel (0 for an empty buffer)."""
        return len(self.channels[0]) if self.channels else 0

    @property
    def duration_s(self) -> float:
        return self.length / float(self.sample_rate) if self.sample_rate else 0.0


def downmix(buffer: AudioBuffer) -> np.ndarray:
    """Reduce a one- or two-channel buffer to a single float32 channel.

    Args:
        buffer: Decoded audio with 1 or 2 equal-length channels.

    Returns:
        The mono sample array.

    Raises:
        UnsupportedChannelLayoutError: zero or more than two channels, or
            stereo channels of different lengths.
    """
    count = buffer.number_of_channels
    if count == 1:
        return buffer.channels[0]

    if count != 2:
        raise UnsupportedChannelLayoutError(
            "Cannot downmix audio with {} channels; only mono and stereo "
            "input is supported.".format(count)
        )

    left, right = buffer.channels
    if len(left) != len(right):
        raise UnsupportedChannelLayoutError(
            "Stereo channels differ in length ({} vs {} samples).".format(
                len(left), len(right)
            )
        )

    left = np.asarray(left, dtype=np.float32)
    right = np.asarray(right, dtype=np.float32)
    mono = STEREO_SCALING_FACTOR * (left + right) / 2
    return mono.astype(np.float32)


def load_audio(path: Path, target_rate: int = SAMPLING_RATE) -> AudioBuffer:
    """Decode an audio file into an AudioBuffer at ``target_rate``.

    Channel layout is preserved; downmixing happens when a job starts.

    Raises:
        AudioDecodeError: libsndfile cannot open or decode ``path``.
    """
    try:
        data, rate = sf.read(str(path), always_2d=True, dtype="float32")
    except sf.LibsndfileError as exc:
        raise AudioDecodeError("Cannot decode {}: {}".format(path, exc.error_string)) from exc
    channels = [np.ascontiguousarray(data[:, i]) for i in range(data.shape[1])]

    if rate != target_rate:
        divisor = math.gcd(int(rate), int(target_rate))
        up = target_rate // divisor
        down = int(rate) // divisor
        logger.debug("Resampling %s from %d Hz to %d Hz", path, rate, target_rate)
        channels = [resample_poly(ch, up, down).astype(np.float32) for ch in channels]

    return AudioBuffer(channels=channels, sample_rate=target_rate)
