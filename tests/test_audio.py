"""Tests for core/audio.py — downmixing and file decoding."""

import math

import numpy as np
import pytest
import soundfile as sf

from whisper_transcriber.config import SAMPLING_RATE
from whisper_transcriber.core.audio import (
    AudioBuffer,
    AudioDecodeError,
    UnsupportedChannelLayoutError,
    downmix,
    load_audio,
)


class TestDownmix:

    def test_mono_passthrough_is_same_array(self):
        buffer = AudioBuffer.from_samples([[0.1, -0.2, 0.3]])
        assert downmix(buffer) is buffer.channels[0]

    def test_opposite_channels_cancel(self):
        mono = downmix(AudioBuffer.from_samples([[1, 1], [-1, -1]]))
        np.testing.assert_array_equal(mono, np.zeros(2, dtype=np.float32))

    def test_equal_channels_scaled_by_sqrt2(self):
        mono = downmix(AudioBuffer.from_samples([[1], [1]]))
        assert mono.shape == (1,)
        assert mono[0] == pytest.approx(math.sqrt(2))

    def test_output_is_float32(self):
        mono = downmix(AudioBuffer.from_samples([[0.5, 0.25], [0.5, 0.25]]))
        assert mono.dtype == np.float32

    def test_inputs_not_mutated(self):
        buffer = AudioBuffer.from_samples([[0.5, 0.25], [0.1, 0.2]])
        before = [ch.copy() for ch in buffer.channels]
        downmix(buffer)
        for original, channel in zip(before, buffer.channels):
            np.testing.assert_array_equal(original, channel)

    def test_more_than_two_channels_raises(self):
        with pytest.raises(UnsupportedChannelLayoutError, match="3 channels"):
            downmix(AudioBuffer.from_samples([[0.0], [0.0], [0.0]]))

    def test_no_channels_raises(self):
        with pytest.raises(UnsupportedChannelLayoutError):
            downmix(AudioBuffer(channels=[]))

    def test_unequal_stereo_lengths_raise(self):
        with pytest.raises(UnsupportedChannelLayoutError):
            downmix(AudioBuffer.from_samples([[0.0, 0.0], [0.0]]))


class TestAudioBuffer:

    def test_duration(self):
        buffer = AudioBuffer.from_samples([np.zeros(SAMPLING_RATE * 2)])
        assert buffer.number_of_channels == 1
        assert buffer.length == SAMPLING_RATE * 2
        assert buffer.duration_s == 2.0

    def test_empty_buffer(self):
        buffer = AudioBuffer(channels=[])
        assert buffer.length == 0
        assert buffer.duration_s == 0.0


class TestLoadAudio:

    def test_keeps_channels_at_native_rate(self, tmp_path):
        path = tmp_path / "stereo.wav"
        frames = np.zeros((SAMPLING_RATE, 2), dtype=np.float32)
        frames[:, 0] = 0.5
        sf.write(str(path), frames, SAMPLING_RATE, subtype="FLOAT")

        buffer = load_audio(path)

        assert buffer.number_of_channels == 2
        assert buffer.sample_rate == SAMPLING_RATE
        assert buffer.length == SAMPLING_RATE
        np.testing.assert_allclose(buffer.channels[0], 0.5)
        np.testing.assert_allclose(buffer.channels[1], 0.0)

    def test_resamples_to_target_rate(self, tmp_path):
        path = tmp_path / "cd.wav"
        sf.write(str(path), np.zeros(44100, dtype=np.float32), 44100)

        buffer = load_audio(path)

        assert buffer.number_of_channels == 1
        assert buffer.sample_rate == SAMPLING_RATE
        assert buffer.length == SAMPLING_RATE
        assert buffer.channels[0].dtype == np.float32

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(AudioDecodeError):
            load_audio(tmp_path / "missing.wav")

    def test_undecodable_file_raises(self, tmp_path):
        path = tmp_path / "notes.wav"
        path.write_bytes(b"this is not audio")
        with pytest.raises(AudioDecodeError, match="Cannot decode"):
            load_audio(path)
