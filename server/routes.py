import logging
import shutil
import threading
from contextlib import contextmanager
from dataclasses import asdict, replace
from datetime import datetime
from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse
from pydantic import BaseModel

import config
from config import AISettings
from db.database import Database, get_audio_files, get_audio_parts
from processing.diarizer import DiarizationParseError, Diarizer
from processing.export import render_export
from processing.providers import AUDIO_MIME_TYPES, TranscriptionBackendError, UnsupportedProviderError
from processing.segments import is_diarized_transcription
from processing.summarizer import Summarizer
from processing.transcriber import Transcriber, select_audio_sources
from recorder import storage
from recorder.session import RecordingSession, SessionStateError
from recorder.streams import PermissionDeniedError

logger = logging.getLogger(__name__)

MIN_FREE_DISK_BYTES = 500 * 1024 * 1024


class UpdateRecordingRequest(BaseModel):
    title: str


class LiveTranscriptionRequest(BaseModel):
    enabled: bool


class SettingsRequest(BaseModel):
    provider: str | None = None
    api_key: str | None = None
    transcription_model: str | None = None
    dossier_model: str | None = None
    live_transcription_enabled: bool | None = None


def default_title(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"Atendimento {now.strftime('%d/%m/%Y %H:%M')}"


@contextmanager
def ai_errors(action: str):
    """Traduz erros das acoes de IA em respostas HTTP."""
    try:
        yield
    except DiarizationParseError as e:
        logger.error("Erro em %s: %s", action, e)
        raise HTTPException(422, str(e))
    except UnsupportedProviderError as e:
        logger.error("Erro em %s: %s", action, e)
        raise HTTPException(500, str(e))
    except TranscriptionBackendError as e:
        logger.error("Erro em %s: %s", action, e)
        raise HTTPException(502, str(e))
    except FileNotFoundError as e:
        logger.error("Erro em %s: %s", action, e)
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))


def create_router(db: Database, session: RecordingSession, settings: AISettings) -> APIRouter:
    router = APIRouter()
    # Um stop concorrente recebe o mesmo RecordingResult; persiste uma vez so
    stop_lock = threading.Lock()
    last_stop = {"result": None, "response": None}
    session.transcriber = Transcriber(settings)
    session.live_transcription_enabled = settings.live_transcription_enabled

    def require_api_key() -> AISettings:
        if not settings.is_configured:
            raise HTTPException(400, "Configure sua chave de API em Configuracoes")
        return settings

    def get_or_404(recording_id: int) -> dict:
        rec = db.get_recording(recording_id)
        if not rec:
            raise HTTPException(404, "Gravacao nao encontrada")
        return rec

    def generate_title_in_background(recording_id: int, transcription: str):
        ai_settings = settings

        def _do_title():
            try:
                title = Summarizer(ai_settings).title(transcription)
                if title:
                    db.update_title(recording_id, title)
                    logger.info("Titulo gerado para %s: %s", recording_id, title)
            except Exception as e:
                logger.warning("Nao foi possivel gerar titulo para %s: %s", recording_id, e)

        threading.Thread(target=_do_title, daemon=True).start()

    # -- Status --

    @router.get("/status")
    def get_status():
        return {
            "state": session.state.value,
            "is_recording": session.is_recording,
            "is_paused": session.is_paused,
            "elapsed_seconds": session.elapsed_seconds,
            "live_transcript": session.live_transcript,
            "live_transcription_enabled": session.live_transcription_enabled,
            "provider": settings.provider,
            "configured": settings.is_configured,
        }

    # -- Settings --

    @router.get("/providers")
    def list_providers():
        return config.AI_PROVIDERS

    @router.get("/settings")
    def get_settings():
        data = asdict(settings)
        data.pop("api_key")
        data["has_api_key"] = settings.is_configured
        return data

    @router.put("/settings")
    def update_settings(body: SettingsRequest):
        nonlocal settings
        updates = body.model_dump(exclude_none=True)
        provider = updates.get("provider", settings.provider)
        if provider not in config.AI_PROVIDERS:
            raise HTTPException(400, f"Provedor nao suportado: {provider}")
        base = settings if provider == settings.provider else config.load_ai_settings(provider)
        settings = replace(base, **updates)
        session.transcriber = Transcriber(settings)
        session.live_transcription_enabled = settings.live_transcription_enabled
        logger.info("Configuracao de IA atualizada: provedor=%s", settings.provider)
        return get_settings()

    # -- Recording control --

    @router.post("/recording/start")
    def start_recording():
        if session.is_recording:
            raise HTTPException(400, "Ja existe uma gravacao em curso")

        storage.ensure_dir(session.recordings_dir)
        free = shutil.disk_usage(session.recordings_dir).free
        if free < MIN_FREE_DISK_BYTES:
            raise HTTPException(507, "Espaco em disco insuficiente (menos de 500MB)")

        try:
            session.start()
        except PermissionDeniedError as e:
            raise HTTPException(403, str(e))
        except SessionStateError as e:
            raise HTTPException(400, str(e))
        except (OSError, RuntimeError) as e:
            logger.error("Nao foi possivel iniciar a gravacao: %s", e)
            raise HTTPException(500, f"Nao foi possivel iniciar a gravacao: {e}")
        return {"state": session.state.value}

    @router.post("/recording/pause")
    def pause_recording():
        try:
            session.pause()
        except SessionStateError as e:
            raise HTTPException(400, str(e))
        return {"state": session.state.value, "elapsed_seconds": session.elapsed_seconds}

    @router.post("/recording/resume")
    def resume_recording():
        try:
            session.resume()
        except SessionStateError as e:
            raise HTTPException(400, str(e))
        return {"state": session.state.value, "elapsed_seconds": session.elapsed_seconds}

    @router.put("/recording/live-transcription")
    def set_live_transcription(body: LiveTranscriptionRequest):
        session.live_transcription_enabled = body.enabled
        return {"live_transcription_enabled": session.live_transcription_enabled}

    @router.post("/recording/stop")
    def stop_recording():
        try:
            result = session.stop()
        except SessionStateError as e:
            raise HTTPException(400, str(e))

        if result is None or not result.path:
            raise HTTPException(500, "Nenhum audio foi salvo")

        with stop_lock:
            if result is last_stop["result"]:
                return last_stop["response"]

            recording_id = db.create_recording(
                default_title(), result.path, result.duration_secs, list(result.parts)
            )
            if result.transcription:
                db.update_transcription(recording_id, result.transcription)
                if settings.is_configured:
                    generate_title_in_background(recording_id, result.transcription)

            response = {
                "id": recording_id,
                "file_path": result.path,
                "parts": len(result.parts),
                "duration": result.duration_secs,
                "transcription": result.transcription,
            }
            last_stop.update(result=result, response=response)
        return response

    # -- Recordings CRUD --

    @router.get("/recordings")
    def list_recordings():
        return [
            {
                "id": r["id"],
                "title": r["title"],
                "duration": r["duration"],
                "created_at": r["created_at"],
                "has_transcription": bool(r["transcription"]),
                "has_dialogue": bool(r["dialogue"]),
                "has_dossier": bool(r["dossier"]),
            }
            for r in db.list_recordings()
        ]

    @router.get("/recordings/{recording_id}")
    def get_recording(recording_id: int):
        rec = get_or_404(recording_id)
        diarized = is_diarized_transcription(rec["dialogue"])
        return {
            **rec,
            "audio_parts": get_audio_parts(rec),
            "dialogue": diarized.to_dict() if diarized else rec["dialogue"],
            "audio_url": f"/api/recordings/{rec['id']}/audio",
        }

    @router.get("/recordings/{recording_id}/audio")
    def get_audio(recording_id: int):
        rec = get_or_404(recording_id)
        audio_path = Path(rec["file_path"])
        if not audio_path.exists():
            raise HTTPException(404, "Arquivo de audio nao encontrado")
        media_type = AUDIO_MIME_TYPES.get(audio_path.suffix.lower(), "application/octet-stream")
        return FileResponse(str(audio_path), media_type=media_type)

    @router.put("/recordings/{recording_id}")
    def update_recording(recording_id: int, body: UpdateRecordingRequest):
        get_or_404(recording_id)
        return db.update_title(recording_id, body.title.strip())

    @router.delete("/recordings/{recording_id}")
    def delete_recording(recording_id: int):
        rec = get_or_404(recording_id)
        files = get_audio_files(rec)
        deleted = storage.delete_all(files)
        db.delete_recording(recording_id)
        logger.info("Gravacao %s excluida (%d/%d arquivos)", recording_id, deleted, len(files))
        return {"deleted": True, "files_deleted": deleted}

    # -- Processing --

    @router.post("/recordings/{recording_id}/transcribe")
    def transcribe_recording(recording_id: int):
        rec = get_or_404(recording_id)
        ai_settings = require_api_key()
        with ai_errors("transcricao"):
            sources = select_audio_sources(rec)
            transcription = Transcriber(ai_settings).transcribe_parts(sources)
        return db.update_transcription(recording_id, transcription)

    @router.post("/recordings/{recording_id}/diarize")
    def diarize_recording(recording_id: int):
        rec = get_or_404(recording_id)
        ai_settings = require_api_key()
        with ai_errors("diarizacao"):
            result = Diarizer(ai_settings).diarize(select_audio_sources(rec))
        db.update_dialogue(recording_id, result.to_json())
        if not rec["transcription"] and result.plain_text:
            db.update_transcription(recording_id, result.plain_text)
        return db.get_recording(recording_id)

    @router.post("/recordings/{recording_id}/dossier")
    def generate_dossier(recording_id: int):
        rec = get_or_404(recording_id)
        if not rec["transcription"]:
            raise HTTPException(400, "Nao ha transcricao disponivel")
        ai_settings = require_api_key()
        with ai_errors("dossie"):
            dossier = Summarizer(ai_settings).dossier(rec["transcription"])
        return db.update_dossier(recording_id, dossier)

    @router.post("/recordings/{recording_id}/title")
    def generate_title(recording_id: int):
        rec = get_or_404(recording_id)
        if not rec["transcription"]:
            raise HTTPException(400, "Nao ha transcricao disponivel")
        ai_settings = require_api_key()
        with ai_errors("titulo"):
            title = Summarizer(ai_settings).title(rec["transcription"])
        if not title:
            raise HTTPException(502, "O provedor devolveu um titulo vazio")
        return db.update_title(recording_id, title)

    @router.get("/recordings/{recording_id}/export")
    def export_recording(recording_id: int, kind: str = "transcription", fmt: str = "txt"):
        rec = get_or_404(recording_id)
        try:
            content = render_export(rec, kind, fmt)
        except ValueError as e:
            raise HTTPException(400, str(e))
        if fmt == "html":
            return HTMLResponse(content)
        return PlainTextResponse(content)

    return router
