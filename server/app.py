from fastapi import FastAPI

from config import AISettings
from db.database import Database
from recorder.session import RecordingSession
from server.routes import create_router


def create_app(db: Database, session: RecordingSession, settings: AISettings) -> FastAPI:
    app = FastAPI(title="ConsultaScribe", version="0.1.0")

    router = create_router(db, session, settings)
    app.include_router(router, prefix="/api")

    return app
