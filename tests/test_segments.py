import json

from processing.segments import (
    FALLBACK_PART_SECONDS,
    DiarizedSegment,
    DiarizedTranscription,
    TimestampedSegment,
    TimestampedTranscription,
    format_timestamp,
    is_diarized_transcription,
    merge_part_segments,
)


def _part(*spans):
    return TimestampedTranscription(
        segments=[TimestampedSegment(start=s, end=e, text=f"{s}-{e}") for s, e in spans],
        plain_text="",
    )


def test_merge_offsets_by_last_segment_end():
    results = [
        _part((0, 2), (2, 5)),
        _part((0, 5)),
        _part((0, 1.5), (1.5, 3)),
    ]

    merged = merge_part_segments(results)

    assert [(s.start, s.end) for s in merged] == [
        (0, 2), (2, 5),
        (5, 10),
        (10, 11.5), (11.5, 13),
    ]
    assert [s.text for s in merged][2] == "0-5"


def test_merge_uses_fallback_for_empty_part():
    merged = merge_part_segments([_part((0, 4)), _part(), _part((0, 1))])

    assert [(s.start, s.end) for s in merged] == [(0, 4), (4 + FALLBACK_PART_SECONDS, 5 + FALLBACK_PART_SECONDS)]


def test_merge_uses_fallback_for_zero_length_part():
    merged = merge_part_segments([_part((0, 0)), _part((0, 2))])

    assert [(s.start, s.end) for s in merged] == [(0, 0), (5, 7)]


def test_merge_empty_input():
    assert merge_part_segments([]) == []


def test_format_timestamp_truncates_to_seconds():
    assert format_timestamp(0) == "00:00"
    assert format_timestamp(5.9) == "00:05"
    assert format_timestamp(65) == "01:05"
    assert format_timestamp(3600) == "60:00"


def test_diarized_transcription_round_trip():
    original = DiarizedTranscription(
        segments=[
            DiarizedSegment(speaker="Advogado", start="00:00", end="00:04", text="Bom dia."),
            DiarizedSegment(speaker="Cliente", start="00:04", end="00:09", text="Bom dia, doutor."),
        ],
        plain_text="Bom dia. Bom dia, doutor.",
    )

    restored = is_diarized_transcription(original.to_json())

    assert restored == original
    assert json.loads(original.to_json())["plainText"] == "Bom dia. Bom dia, doutor."


def test_is_diarized_rejects_other_values():
    assert is_diarized_transcription(None) is None
    assert is_diarized_transcription("") is None
    assert is_diarized_transcription("Texto corrido de uma consulta.") is None
    assert is_diarized_transcription("[1, 2, 3]") is None
    assert is_diarized_transcription('{"segments": []}') is None
    assert is_diarized_transcription('{"diarized": "true", "segments": []}') is None
    assert is_diarized_transcription('{"diarized": true, "segments": "x"}') is None


def test_as_text_lists_speaker_lines():
    transcript = DiarizedTranscription(
        segments=[
            DiarizedSegment(speaker="Advogado", start="00:00", end="00:03", text="Pois nao?"),
            DiarizedSegment(speaker="Cliente", start="00:03", end="00:08", text="Preciso de ajuda."),
        ],
        plain_text="",
    )

    assert transcript.as_text() == "[00:00] Advogado: Pois nao?\n[00:03] Cliente: Preciso de ajuda."
