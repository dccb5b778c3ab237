import logging
import socket
import sys

import uvicorn

import config
from db.database import Database
from recorder.audio_capture import PyAudioBackend
from recorder.session import RecordingSession
from server.app import create_app

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("consultascribe")


def find_available_port(start: int, end: int) -> int:
    for port in range(start, end + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind((config.HOST, port))
                return port
            except OSError:
                continue
    raise RuntimeError(f"Nenhuma porta disponivel entre {start} e {end}")


def main():
    for d in [config.RECORDINGS_DIR, config.CHUNKS_DIR, config.CAPTURE_DIR]:
        d.mkdir(parents=True, exist_ok=True)

    try:
        port = find_available_port(config.PORT, config.PORT + 13)
    except RuntimeError as e:
        logger.error(str(e))
        sys.exit(1)

    if port != config.PORT:
        logger.info("Porta %d em uso, usando %d", config.PORT, port)
    config.PORT = port

    settings = config.load_ai_settings()
    if not settings.is_configured:
        logger.warning(
            "Sem chave de API para %s: transcricao ao vivo desativada ate configurar",
            settings.provider,
        )

    db = Database(config.DB_PATH)
    backend = PyAudioBackend()
    session = RecordingSession(backend)
    app = create_app(db, session, settings)

    logger.info("ConsultaScribe iniciado em http://%s:%d", config.HOST, config.PORT)
    try:
        uvicorn.run(app, host=config.HOST, port=config.PORT, log_level="warning")
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("Encerrando ConsultaScribe...")
        session.close()
        backend.terminate()


if __name__ == "__main__":
    main()
