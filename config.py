import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Caminhos
BASE_DIR = Path(__file__).parent
DATA_DIR = Path(os.getenv("CONSULTASCRIBE_DATA_DIR", BASE_DIR / "data"))
RECORDINGS_DIR = DATA_DIR / "recordings"
CHUNKS_DIR = DATA_DIR / "cache" / "chunks"
CAPTURE_DIR = DATA_DIR / "cache" / "capture"
DB_PATH = DATA_DIR / "gravador_juridico.db"

# Servidor
HOST = "127.0.0.1"
PORT = int(os.getenv("CONSULTASCRIBE_PORT", "8787"))
LOG_LEVEL = os.getenv("CONSULTASCRIBE_LOG_LEVEL", "INFO")

# Gravacao
CHUNK_DURATION_SECS = 5
TICK_INTERVAL_SECS = 1
FULL_AUDIO_FORMAT = os.getenv("CONSULTASCRIBE_FULL_FORMAT", "mp3")  # "mp3" ou "wav"
STOP_TRANSCRIPTION_TIMEOUT_SECS = 60
LIVE_TRANSCRIPTION_WORKERS = 2

# IA
LANGUAGE = "pt"
TEXT_TEMPERATURE = 0.3
REQUEST_TIMEOUT_SECS = 300
MAX_UPLOAD_BYTES = 25 * 1024 * 1024

AI_PROVIDERS = {
    "openai": {
        "name": "OpenAI",
        "transcription_models": [
            {"id": "gpt-4o-mini-transcribe", "name": "GPT-4o Mini Transcribe",
             "description": "Rapido e economico (recomendado)"},
            {"id": "gpt-4o-transcribe", "name": "GPT-4o Transcribe",
             "description": "Mais preciso"},
            {"id": "whisper-1", "name": "Whisper",
             "description": "Modelo legado, unico com timestamps"},
        ],
        "dossier_models": [
            {"id": "gpt-4o", "name": "GPT-4o", "description": "Mais capaz e preciso"},
            {"id": "gpt-4o-mini", "name": "GPT-4o Mini", "description": "Mais rapido e economico"},
            {"id": "gpt-4.1-mini", "name": "GPT-4.1 Mini", "description": "Ultima geracao economico"},
        ],
    },
    "gemini": {
        "name": "Google Gemini",
        "transcription_models": [
            {"id": "gemini-2.0-flash", "name": "Gemini 2.0 Flash",
             "description": "Rapido, aceita audio direto"},
            {"id": "gemini-1.5-pro", "name": "Gemini 1.5 Pro", "description": "Mais preciso"},
        ],
        "dossier_models": [
            {"id": "gemini-2.0-flash", "name": "Gemini 2.0 Flash", "description": "Rapido e economico"},
            {"id": "gemini-1.5-pro", "name": "Gemini 1.5 Pro", "description": "Mais preciso"},
        ],
    },
    "groq": {
        "name": "Groq",
        "transcription_models": [
            {"id": "whisper-large-v3", "name": "Whisper Large V3",
             "description": "Alta qualidade, muito rapido"},
            {"id": "whisper-large-v3-turbo", "name": "Whisper Large V3 Turbo",
             "description": "Mais rapido"},
        ],
        "dossier_models": [
            {"id": "llama-3.3-70b-versatile", "name": "Llama 3.3 70B", "description": "Mais capaz"},
            {"id": "llama-3.1-8b-instant", "name": "Llama 3.1 8B", "description": "Mais rapido"},
        ],
    },
}

AI_PROVIDER = os.getenv("CONSULTASCRIBE_AI_PROVIDER", "openai")
API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "groq": "GROQ_API_KEY",
}


@dataclass(frozen=True)
class AISettings:
    provider: str
    api_key: str = ""
    transcription_model: str = ""
    dossier_model: str = ""
    live_transcription_enabled: bool = True

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


def default_model(provider: str, kind: str) -> str:
    models = AI_PROVIDERS.get(provider, {}).get(f"{kind}_models", [])
    return models[0]["id"] if models else ""


def load_ai_settings(provider: str | None = None) -> AISettings:
    provider = provider or AI_PROVIDER
    return AISettings(
        provider=provider,
        api_key=os.getenv(API_KEY_ENV.get(provider, ""), ""),
        transcription_model=os.getenv(
            "CONSULTASCRIBE_TRANSCRIPTION_MODEL", default_model(provider, "transcription")
        ),
        dossier_model=os.getenv(
            "CONSULTASCRIBE_DOSSIER_MODEL", default_model(provider, "dossier")
        ),
        live_transcription_enabled=os.getenv("CONSULTASCRIBE_LIVE_TRANSCRIPTION", "true") != "false",
    )
