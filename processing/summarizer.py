import logging

from config import AISettings
from processing import providers
from processing.prompts import DOSSIER_PROMPT, TITLE_PROMPT

logger = logging.getLogger(__name__)


class Summarizer:
    def __init__(self, settings: AISettings):
        self.settings = settings

    def _call_llm(self, prompt: str) -> str:
        return providers.generate_text(
            self.settings.provider,
            self.settings.api_key,
            prompt,
            self.settings.dossier_model,
        )

    def dossier(self, transcription: str) -> str:
        if not transcription or not transcription.strip():
            raise ValueError("A transcricao esta vazia")
        dossier = self._call_llm(DOSSIER_PROMPT + transcription)
        logger.info("Dossie gerado (%d caracteres)", len(dossier))
        return dossier

    def title(self, transcription: str) -> str:
        if not transcription or not transcription.strip():
            raise ValueError("A transcricao esta vazia")
        title = self._call_llm(TITLE_PROMPT.format(transcription=transcription))
        return title.strip().strip('"').strip()
