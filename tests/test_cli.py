"""Tests for the command-line interface.

WHY: The CLI is how most users drive a job and collect files. It must
write the right files with the right names, never overwrite an earlier
export, and exit non-zero with a readable message on every failure.

HOW: main() is called in-process with argv lists. Audio inputs are small
WAV files written with soundfile; the model is replaced by --replay or a
backend import path from conftest.py.

RULES:
- Every test writes only under tmp_path
- Failures are asserted through SystemExit code 1 plus stderr text
"""

from __future__ import annotations

import json

import numpy as np
import pytest
import soundfile as sf

from whisper_transcriber.cli import build_parser, main
from whisper_transcriber.formatters.json_chunks import chunks_to_json


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def chunks_file(tmp_path, sample_chunks):
    path = tmp_path / "recorded.json"
    path.write_text(chunks_to_json(sample_chunks), encoding="utf-8")
    return path


@pytest.fixture
def wav_file(tmp_path):
    path = tmp_path / "talk.wav"
    frames = np.zeros((4410, 2), dtype=np.float32)
    sf.write(str(path), frames, 44100)
    return path


@pytest.fixture
def no_default_backend(monkeypatch):
    monkeypatch.setattr("whisper_transcriber.cli.DEFAULT_BACKEND", None)


def _exit_code(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    return excinfo.value.code


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


class TestExportCommand:

    def test_writes_selected_formats(self, tmp_path, chunks_file, capsys):
        main(["export", str(chunks_file), "--formats", "srt,lrc_alt"])
        assert (tmp_path / "recorded.srt").is_file()
        assert (tmp_path / "recorded_alt.lrc").is_file()
        assert not (tmp_path / "recorded.txt").exists()
        assert "Saved 2 file(s)" in capsys.readouterr().err

    def test_all_formats_by_default(self, tmp_path, chunks_file):
        main(["export", str(chunks_file), "--source-name", "interview.mp3"])
        names = sorted(p.name for p in tmp_path.iterdir() if p.name.startswith("interview"))
        assert names == [
            "interview.json",
            "interview.lrc",
            "interview.srt",
            "interview.ttml",
            "interview.txt",
            "interview_alt.lrc",
        ]

    def test_output_dir(self, tmp_path, chunks_file):
        out = tmp_path / "out"
        out.mkdir()
        main(["export", str(chunks_file), "--formats", "txt", "--output-dir", str(out)])
        assert (out / "recorded.txt").read_text(encoding="utf-8").startswith("Hello there.")

    def test_conflicting_names_get_numeric_suffix(self, tmp_path, chunks_file):
        main(["export", str(chunks_file), "--formats", "srt"])
        main(["export", str(chunks_file), "--formats", "srt"])
        main(["export", str(chunks_file), "--formats", "srt"])
        assert (tmp_path / "recorded.srt").is_file()
        assert (tmp_path / "recorded-2.srt").is_file()
        assert (tmp_path / "recorded-3.srt").is_file()

    def test_json_export_keeps_source_file(self, tmp_path, chunks_file, sample_chunks):
        main(["export", str(chunks_file), "--formats", "json"])
        exported = json.loads((tmp_path / "recorded-2.json").read_text(encoding="utf-8"))
        assert len(exported) == len(sample_chunks)

    def test_ttml_language(self, tmp_path, chunks_file):
        main(["export", str(chunks_file), "--formats", "ttml", "--ttml-language", "de"])
        assert 'xml:lang="de"' in (tmp_path / "recorded.ttml").read_text(encoding="utf-8")

    def test_unknown_format(self, chunks_file, capsys):
        assert _exit_code(["export", str(chunks_file), "--formats", "docx"]) == 1
        assert "Unknown format 'docx'" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert _exit_code(["export", str(tmp_path / "nope.json")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_invalid_json_shape(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text('{"text": "x"}', encoding="utf-8")
        assert _exit_code(["export", str(path)]) == 1
        assert "Expected a JSON array" in capsys.readouterr().err

    def test_missing_output_dir(self, tmp_path, chunks_file):
        assert _exit_code([
            "export", str(chunks_file), "--output-dir", str(tmp_path / "missing"),
        ]) == 1


# ---------------------------------------------------------------------------
# transcribe
# ---------------------------------------------------------------------------


class TestTranscribeCommand:

    def test_replay_writes_outputs_named_after_audio(self, tmp_path, wav_file, chunks_file, capsys):
        main([
            "transcribe", str(wav_file),
            "--replay", str(chunks_file),
            "--formats", "txt,srt",
            "--timeout", "10",
        ])
        text = (tmp_path / "talk.txt").read_text(encoding="utf-8")
        assert text == "Hello there.\nHow are you doing\ntoday?\nFine, thanks.\nBye"
        assert (tmp_path / "talk.srt").read_text(encoding="utf-8").startswith("1\n")
        err = capsys.readouterr().err
        assert "Model ready" in err
        assert "Transcription complete (5 chunks)" in err

    def test_backend_import_path(self, tmp_path, wav_file, capsys):
        code = _exit_code([
            "transcribe", str(wav_file),
            "--backend", "conftest:ExplodingBackend",
            "--timeout", "10",
        ])
        assert code == 1
        assert "out of memory" in capsys.readouterr().err
        assert not (tmp_path / "talk.txt").exists()

    def test_unresolvable_backend(self, wav_file, capsys):
        assert _exit_code(["transcribe", str(wav_file), "--backend", "no_such_module:Backend"]) == 1
        assert "Cannot import backend module" in capsys.readouterr().err

    def test_malformed_backend_path(self, wav_file, capsys):
        assert _exit_code(["transcribe", str(wav_file), "--backend", "no_colon"]) == 1
        assert "module:attr" in capsys.readouterr().err

    def test_no_backend_configured(self, wav_file, no_default_backend, capsys):
        assert _exit_code(["transcribe", str(wav_file)]) == 1
        assert "No backend configured" in capsys.readouterr().err

    def test_missing_replay_file(self, tmp_path, wav_file, capsys):
        code = _exit_code([
            "transcribe", str(wav_file), "--replay", str(tmp_path / "missing.json"),
        ])
        assert code == 1
        assert "Replay file not found" in capsys.readouterr().err

    def test_translated_without_translation(self, wav_file, chunks_file, capsys):
        code = _exit_code([
            "transcribe", str(wav_file),
            "--replay", str(chunks_file),
            "--translated",
            "--timeout", "10",
        ])
        assert code == 1
        assert "no translated chunks" in capsys.readouterr().err

    def test_undecodable_audio(self, tmp_path, chunks_file, capsys):
        path = tmp_path / "notes.wav"
        path.write_bytes(b"this is not audio")
        code = _exit_code(["transcribe", str(path), "--replay", str(chunks_file)])
        assert code == 1
        assert "Cannot decode" in capsys.readouterr().err
        assert not (tmp_path / "notes.txt").exists()

    def test_surround_audio_rejected(self, tmp_path, chunks_file, capsys):
        path = tmp_path / "surround.wav"
        sf.write(str(path), np.zeros((1600, 6), dtype=np.float32), 16000)
        code = _exit_code(["transcribe", str(path), "--replay", str(chunks_file)])
        assert code == 1
        assert "6 channels" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class TestParser:

    def test_transcribe_options(self):
        args = build_parser().parse_args([
            "transcribe", "a.wav",
            "--multilingual", "--no-quantized",
            "--subtask", "translate",
            "--language", "auto",
            "--granularity", "word",
        ])
        assert args.multilingual is True
        assert args.quantized is False
        assert args.subtask == "translate"
        assert args.language == "auto"
        assert args.granularity == "word"

    def test_invalid_granularity_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["transcribe", "a.wav", "--granularity", "line"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])
