"""Remote speech-to-text and text-generation backends behind one interface.

Every provider implements transcribe(), transcribe_timestamped() and
generate_text(). Callers use the module-level functions, which dispatch on
the provider name.
"""

import base64
import json
import logging
from pathlib import Path

import requests

import config
from processing.container import patch_ftyp_brand
from processing.prompts import GEMINI_TIMESTAMPED_PROMPT, GEMINI_TRANSCRIBE_PROMPT
from processing.segments import TimestampedSegment, TimestampedTranscription
from recorder import storage

logger = logging.getLogger(__name__)

AUDIO_MIME_TYPES = {
    ".m4a": "audio/mp4",
    ".mp4": "audio/mp4",
    ".3gp": "audio/3gpp",
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".webm": "audio/webm",
    ".flac": "audio/flac",
}


class ProviderError(RuntimeError):
    pass


class UnsupportedProviderError(ProviderError):
    def __init__(self, provider: str):
        super().__init__(f"Provedor nao suportado: {provider}")
        self.provider = provider


class TranscriptionBackendError(ProviderError):
    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(f"{message}: {body}" if body else message)
        self.status_code = status_code
        self.body = body


def _require_file(audio_path) -> Path:
    path = Path(audio_path)
    if not path.exists():
        raise FileNotFoundError(f"Arquivo de audio nao encontrado: {path}")
    return path


def _audio_mime(path: Path) -> str:
    return AUDIO_MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")


def _single_segment(text: str) -> TimestampedTranscription:
    # Sem timestamps: um segmento cobrindo tudo, start=end=0
    text = text.strip()
    return TimestampedTranscription(
        segments=[TimestampedSegment(start=0, end=0, text=text)],
        plain_text=text,
    )


def _to_float(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _parse_segments(data: dict) -> list[TimestampedSegment]:
    return [
        TimestampedSegment(
            start=_to_float(seg.get("start")),
            end=_to_float(seg.get("end")),
            text=str(seg.get("text") or "").strip(),
        )
        for seg in data.get("segments") or []
        if isinstance(seg, dict)
    ]


class AIProvider:
    label = ""

    def __init__(self, api_key: str, timeout: int = config.REQUEST_TIMEOUT_SECS):
        self.api_key = api_key
        self.timeout = timeout

    def transcribe(self, audio_path, model: str) -> str:
        raise NotImplementedError

    def transcribe_timestamped(self, audio_path, model: str) -> TimestampedTranscription:
        raise NotImplementedError

    def generate_text(self, prompt: str, model: str) -> str:
        raise NotImplementedError

    def _post(self, url: str, **kwargs) -> requests.Response:
        try:
            response = requests.post(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise TranscriptionBackendError(f"Falha ao contatar {self.label}") from exc
        if not response.ok:
            raise TranscriptionBackendError(
                f"Erro na resposta {self.label}",
                status_code=response.status_code,
                body=response.text,
            )
        return response


class OpenAICompatibleProvider(AIProvider):
    base_url = ""

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.api_key}"}

    def _prepare_upload(self, path: Path):
        pass

    def _upload_name(self, path: Path) -> str:
        return f"audio{path.suffix.lower()}"

    def supports_timestamps(self, model: str) -> bool:
        return True

    def _request_transcription(self, audio_path, model: str, response_format: str,
                               extra: list[tuple[str, str]] | None = None) -> requests.Response:
        path = _require_file(audio_path)
        self._prepare_upload(path)
        data = [
            ("model", model),
            ("language", config.LANGUAGE),
            ("response_format", response_format),
        ] + (extra or [])
        with open(path, "rb") as fh:
            return self._post(
                f"{self.base_url}/audio/transcriptions",
                headers=self._headers(),
                files={"file": (self._upload_name(path), fh, _audio_mime(path))},
                data=data,
            )

    def transcribe(self, audio_path, model: str) -> str:
        response = self._request_transcription(audio_path, model, "text")
        return response.text.strip()

    def transcribe_timestamped(self, audio_path, model: str) -> TimestampedTranscription:
        if not self.supports_timestamps(model):
            return _single_segment(self.transcribe(audio_path, model))
        response = self._request_transcription(
            audio_path, model, "verbose_json",
            extra=[("timestamp_granularities[]", "segment")],
        )
        try:
            data = response.json()
        except ValueError as exc:
            raise TranscriptionBackendError(
                f"Resposta {self.label} invalida", body=response.text[:200]
            ) from exc
        return TimestampedTranscription(
            segments=_parse_segments(data),
            plain_text=str(data.get("text") or "").strip(),
        )

    def generate_text(self, prompt: str, model: str) -> str:
        response = self._post(
            f"{self.base_url}/chat/completions",
            headers=self._headers(),
            json={
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": config.TEXT_TEMPERATURE,
            },
        )
        choices = response.json().get("choices") or []
        if not choices:
            raise TranscriptionBackendError(f"Resposta {self.label} sem choices")
        return str(choices[0].get("message", {}).get("content") or "")


class OpenAIProvider(OpenAICompatibleProvider):
    label = "OpenAI"
    base_url = "https://api.openai.com/v1"

    def _prepare_upload(self, path: Path):
        patch_ftyp_brand(path)

    def _upload_name(self, path: Path) -> str:
        # Depois do patch, m4a/3gp sobem como MP4 generico
        if path.suffix.lower() in (".m4a", ".3gp"):
            return "audio.mp4"
        return super()._upload_name(path)

    def supports_timestamps(self, model: str) -> bool:
        # verbose_json so funciona com whisper-1
        return model == "whisper-1"


class GroqProvider(OpenAICompatibleProvider):
    label = "Groq"
    base_url = "https://api.groq.com/openai/v1"


class GeminiProvider(AIProvider):
    label = "Gemini"
    base_url = "https://generativelanguage.googleapis.com/v1beta"

    def _generate(self, model: str, parts: list[dict], generation_config: dict | None = None) -> str:
        body = {"contents": [{"role": "user", "parts": parts}]}
        if generation_config:
            body["generationConfig"] = generation_config
        response = self._post(
            f"{self.base_url}/models/{model}:generateContent",
            headers={"x-goog-api-key": self.api_key},
            json=body,
        )
        candidates = response.json().get("candidates") or []
        if not candidates:
            raise TranscriptionBackendError("Resposta Gemini sem candidatos")
        content_parts = candidates[0].get("content", {}).get("parts") or []
        return "".join(str(p.get("text", "")) for p in content_parts)

    def _audio_part(self, audio_path) -> dict:
        path = _require_file(audio_path)
        return {
            "inline_data": {
                "mime_type": _audio_mime(path),
                "data": base64.b64encode(storage.read_bytes(path)).decode("ascii"),
            }
        }

    def transcribe(self, audio_path, model: str) -> str:
        parts = [self._audio_part(audio_path), {"text": GEMINI_TRANSCRIBE_PROMPT}]
        return self._generate(model, parts).strip()

    def transcribe_timestamped(self, audio_path, model: str) -> TimestampedTranscription:
        parts = [self._audio_part(audio_path), {"text": GEMINI_TIMESTAMPED_PROMPT}]
        raw = self._generate(model, parts, {"responseMimeType": "application/json"})
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Gemini nao devolveu JSON com timestamps, usando texto puro")
            return _single_segment(raw)
        if not isinstance(data, dict):
            return _single_segment(raw)
        segments = _parse_segments(data)
        plain_text = str(data.get("text") or "").strip() or " ".join(s.text for s in segments)
        return TimestampedTranscription(segments=segments, plain_text=plain_text)

    def generate_text(self, prompt: str, model: str) -> str:
        return self._generate(
            model, [{"text": prompt}], {"temperature": config.TEXT_TEMPERATURE}
        )


PROVIDERS = {
    "openai": OpenAIProvider,
    "groq": GroqProvider,
    "gemini": GeminiProvider,
}


def get_provider(provider: str, api_key: str) -> AIProvider:
    try:
        provider_cls = PROVIDERS[provider]
    except KeyError:
        raise UnsupportedProviderError(provider) from None
    return provider_cls(api_key)


def transcribe(provider: str, api_key: str, audio_path, model: str) -> str:
    return get_provider(provider, api_key).transcribe(audio_path, model)


def transcribe_timestamped(provider: str, api_key: str, audio_path,
                           model: str) -> TimestampedTranscription:
    return get_provider(provider, api_key).transcribe_timestamped(audio_path, model)


def generate_text(provider: str, api_key: str, prompt: str, model: str) -> str:
    return get_provider(provider, api_key).generate_text(prompt, model)
