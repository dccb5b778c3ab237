import json

from config import AISettings
from processing import providers
from processing.segments import TimestampedSegment, TimestampedTranscription
from processing.transcriber import Transcriber, select_audio_sources

SETTINGS = AISettings(provider="openai", api_key="sk", transcription_model="whisper-1",
                      dossier_model="gpt-4o")


def _recording(tmp_path, full_size=10, parts=2):
    full = tmp_path / "gravacao_full.mp3"
    full.write_bytes(b"x" * full_size)
    part_paths = []
    for i in range(1, parts + 1):
        part = tmp_path / f"gravacao_{i:03d}.wav"
        part.write_bytes(b"p")
        part_paths.append(str(part))
    return {"id": 1, "file_path": str(full), "audio_parts": json.dumps(part_paths)}, part_paths


def test_select_prefers_full_file_under_limit(tmp_path):
    rec, _ = _recording(tmp_path)

    assert select_audio_sources(rec, max_upload_bytes=100) == [rec["file_path"]]


def test_select_uses_parts_when_full_file_too_large(tmp_path):
    rec, parts = _recording(tmp_path, full_size=200)

    assert select_audio_sources(rec, max_upload_bytes=100) == parts


def test_select_uses_parts_when_full_file_missing(tmp_path):
    rec, parts = _recording(tmp_path)
    (tmp_path / "gravacao_full.mp3").unlink()

    assert select_audio_sources(rec) == parts


def test_select_legacy_recording_uses_primary(tmp_path):
    audio = tmp_path / "antiga.wav"
    audio.write_bytes(b"x")

    assert select_audio_sources({"file_path": str(audio), "audio_parts": None}) == [str(audio)]


def test_transcribe_parts_joins_non_empty_text(monkeypatch):
    texts = {"a": " Bom dia. ", "b": "", "c": "Tudo bem?"}
    calls = []

    def fake_transcribe(provider, api_key, audio_path, model):
        calls.append((provider, api_key, audio_path, model))
        return texts[audio_path]

    monkeypatch.setattr(providers, "transcribe", fake_transcribe)

    assert Transcriber(SETTINGS).transcribe_parts(["a", "b", "c"]) == "Bom dia. Tudo bem?"
    assert calls[0] == ("openai", "sk", "a", "whisper-1")


def test_transcribe_parts_timestamped_merges_timeline(monkeypatch):
    results = {
        "a": TimestampedTranscription([TimestampedSegment(0, 5, "um")], "um"),
        "b": TimestampedTranscription([TimestampedSegment(0, 5, "dois")], "dois"),
        "c": TimestampedTranscription([TimestampedSegment(0, 3, "tres")], "tres"),
    }
    monkeypatch.setattr(providers, "transcribe_timestamped",
                        lambda provider, api_key, audio_path, model: results[audio_path])

    segments, plain = Transcriber(SETTINGS).transcribe_parts_timestamped(["a", "b", "c"])

    assert [(s.start, s.end) for s in segments] == [(0, 5), (5, 10), (10, 13)]
    assert plain == "um dois tres"


def test_is_configured_follows_api_key():
    assert Transcriber(SETTINGS).is_configured
    assert not Transcriber(AISettings(provider="openai")).is_configured
