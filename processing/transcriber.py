import logging
from pathlib import Path

import config
from config import AISettings
from db.database import get_audio_parts
from processing import providers
from processing.segments import TimestampedSegment, TimestampedTranscription, merge_part_segments
from recorder import storage

logger = logging.getLogger(__name__)


def select_audio_sources(recording: dict,
                         max_upload_bytes: int = config.MAX_UPLOAD_BYTES) -> list[str]:
    """Arquivos a transcrever para uma gravacao.

    Usa o arquivo integral quando ele existe, nao e uma das partes e cabe no
    limite de upload; caso contrario, as partes em ordem.
    """
    parts = get_audio_parts(recording)
    full = recording.get("file_path")
    if full and full not in parts and storage.exists(full):
        if Path(full).stat().st_size <= max_upload_bytes:
            return [full]
        logger.info("Arquivo integral acima do limite de upload, usando %d partes", len(parts))
    return parts


class Transcriber:
    def __init__(self, settings: AISettings):
        self.settings = settings

    @property
    def is_configured(self) -> bool:
        return self.settings.is_configured

    def transcribe(self, audio_path) -> str:
        return providers.transcribe(
            self.settings.provider,
            self.settings.api_key,
            audio_path,
            self.settings.transcription_model,
        )

    def transcribe_timestamped(self, audio_path) -> TimestampedTranscription:
        return providers.transcribe_timestamped(
            self.settings.provider,
            self.settings.api_key,
            audio_path,
            self.settings.transcription_model,
        )

    def transcribe_parts(self, parts: list[str]) -> str:
        texts = []
        for idx, part in enumerate(parts, start=1):
            logger.info("Transcrevendo parte %d/%d...", idx, len(parts))
            text = (self.transcribe(part) or "").strip()
            if text:
                texts.append(text)
        return " ".join(texts)

    def transcribe_parts_timestamped(
        self, parts: list[str]
    ) -> tuple[list[TimestampedSegment], str]:
        results = []
        for idx, part in enumerate(parts, start=1):
            logger.info("Transcrevendo parte %d/%d com timestamps...", idx, len(parts))
            results.append(self.transcribe_timestamped(part))
        segments = merge_part_segments(results)
        plain_text = " ".join(r.plain_text.strip() for r in results if r.plain_text.strip())
        logger.info("Transcricao com timestamps: %d segmentos", len(segments))
        return segments, plain_text
