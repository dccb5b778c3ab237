"""LLM-based speaker attribution over a merged timestamped transcript."""

import json
import logging
import re

from config import AISettings
from processing import providers
from processing.prompts import DIARIZATION_PROMPT
from processing.segments import (
    DiarizedSegment,
    DiarizedTranscription,
    TimestampedSegment,
    format_timestamp,
)
from processing.transcriber import Transcriber

logger = logging.getLogger(__name__)

DEFAULT_SPEAKER = "Desconhecido"
DEFAULT_TIMESTAMP = "00:00"

_FENCE_JSON = re.compile(r"```json\s*")
_FENCE = re.compile(r"```\s*")


class DiarizationParseError(ValueError):
    pass


def format_segments_for_prompt(segments: list[TimestampedSegment]) -> str:
    return "\n".join(
        f'[{format_timestamp(s.start)} - {format_timestamp(s.end)}] "{s.text}"'
        for s in segments
        if s.text.strip()
    )


def build_diarization_prompt(segments: list[TimestampedSegment]) -> str:
    return DIARIZATION_PROMPT + format_segments_for_prompt(segments)


def _coerce_segment(item) -> DiarizedSegment:
    if item is None:
        raise DiarizationParseError("Segmento nulo na resposta da diarizacao")
    if not isinstance(item, dict):
        # Elemento escalar: vira um segmento com os valores padrao
        item = {}
    return DiarizedSegment(
        speaker=str(item.get("speaker") or DEFAULT_SPEAKER),
        start=str(item.get("start") or DEFAULT_TIMESTAMP),
        end=str(item.get("end") or DEFAULT_TIMESTAMP),
        text=str(item.get("text") or ""),
    )


def parse_diarization_response(response: str) -> list[DiarizedSegment]:
    """Parse the LLM answer, tolerating markdown code fences.

    Accepts a bare JSON array or an object with a "segments" array.
    """
    cleaned = _FENCE.sub("", _FENCE_JSON.sub("", response or "")).strip()
    try:
        parsed = json.loads(cleaned)
    except ValueError as exc:
        logger.warning("Resposta de diarizacao nao e JSON: %s", (response or "")[:200])
        raise DiarizationParseError(
            "Falha ao interpretar resposta da diarizacao. Tente novamente."
        ) from exc

    if isinstance(parsed, dict) and isinstance(parsed.get("segments"), list):
        items = parsed["segments"]
    elif isinstance(parsed, list):
        items = parsed
    else:
        raise DiarizationParseError("Resposta da diarizacao sem lista de segmentos")
    return [_coerce_segment(item) for item in items]


class Diarizer:
    def __init__(self, settings: AISettings, transcriber: Transcriber | None = None):
        self.settings = settings
        self.transcriber = transcriber or Transcriber(settings)

    def diarize_segments(self, segments: list[TimestampedSegment]) -> list[DiarizedSegment]:
        response = providers.generate_text(
            self.settings.provider,
            self.settings.api_key,
            build_diarization_prompt(segments),
            self.settings.dossier_model,
        )
        return parse_diarization_response(response)

    def diarize(self, sources: list[str]) -> DiarizedTranscription:
        """Transcribe `sources` (one whole file or ordered parts) and attribute speakers."""
        segments, plain_text = self.transcriber.transcribe_parts_timestamped(sources)
        logger.info("Identificando interlocutores em %d segmentos...", len(segments))
        diarized = self.diarize_segments(segments)
        return DiarizedTranscription(segments=diarized, plain_text=plain_text)
