"""Timestamped and diarized segment types, plus the part-merging logic."""

import json
from dataclasses import asdict, dataclass, field

# Avanco do offset quando uma parte nao devolve segmentos utilizaveis
FALLBACK_PART_SECONDS = 5


@dataclass
class TimestampedSegment:
    start: float
    end: float
    text: str


@dataclass
class TimestampedTranscription:
    segments: list[TimestampedSegment] = field(default_factory=list)
    plain_text: str = ""


@dataclass
class DiarizedSegment:
    speaker: str
    start: str
    end: str
    text: str


@dataclass
class DiarizedTranscription:
    segments: list[DiarizedSegment]
    plain_text: str
    diarized: bool = True

    def to_dict(self) -> dict:
        return {
            "diarized": self.diarized,
            "segments": [asdict(seg) for seg in self.segments],
            "plainText": self.plain_text,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def as_text(self) -> str:
        return "\n".join(f"[{s.start}] {s.speaker}: {s.text}" for s in self.segments)


def format_timestamp(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def merge_part_segments(results: list[TimestampedTranscription]) -> list[TimestampedSegment]:
    """Concatenate per-part segments onto one timeline.

    Each part's segments are shifted by the running offset; the offset then
    grows by the part's last segment end, or by FALLBACK_PART_SECONDS when
    the part returned no segments (or only zero-length ones).
    """
    merged = []
    offset = 0.0
    for result in results:
        for seg in result.segments:
            merged.append(TimestampedSegment(
                start=seg.start + offset,
                end=seg.end + offset,
                text=seg.text,
            ))
        if result.segments and result.segments[-1].end > 0:
            offset += result.segments[-1].end
        else:
            offset += FALLBACK_PART_SECONDS
    return merged


def is_diarized_transcription(value: str | None) -> DiarizedTranscription | None:
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return None
    if not isinstance(parsed, dict) or parsed.get("diarized") is not True:
        return None
    if not isinstance(parsed.get("segments"), list):
        return None
    segments = [
        DiarizedSegment(
            speaker=str(seg.get("speaker", "")),
            start=str(seg.get("start", "")),
            end=str(seg.get("end", "")),
            text=str(seg.get("text", "")),
        )
        for seg in parsed["segments"]
        if isinstance(seg, dict)
    ]
    return DiarizedTranscription(segments=segments, plain_text=str(parsed.get("plainText", "")))
