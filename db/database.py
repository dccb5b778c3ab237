import json
import logging
import sqlite3
import threading
from pathlib import Path

from db.models import MIGRATIONS, SCHEMA_SQL, UPDATABLE_FIELDS

logger = logging.getLogger(__name__)


def get_audio_parts(recording: dict) -> list[str]:
    """Partes reproduziveis de uma gravacao, em ordem.

    Gravacoes sem `audio_parts` (ou com JSON invalido) tem o arquivo
    principal como unica parte.
    """
    if recording.get("audio_parts"):
        try:
            parts = json.loads(recording["audio_parts"])
            if isinstance(parts, list) and parts:
                return [str(p) for p in parts]
        except (TypeError, ValueError):
            logger.warning("audio_parts invalido na gravacao %s", recording.get("id"))
    return [recording["file_path"]]


def get_audio_files(recording: dict) -> list[str]:
    """Todos os arquivos referenciados pela gravacao, cada um uma unica vez."""
    files = []
    for path in [recording.get("file_path"), *get_audio_parts(recording)]:
        if path and path not in files:
            files.append(path)
    return files


class Database:
    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()
        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn = conn
        return conn

    def _init_schema(self):
        conn = self._get_conn()
        conn.executescript(SCHEMA_SQL)
        columns = {row["name"] for row in conn.execute("PRAGMA table_info(recordings)")}
        for column, sql in MIGRATIONS.items():
            if column not in columns:
                logger.info("Migrando banco: adicionando coluna %s", column)
                conn.execute(sql)
        conn.commit()

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        conn = self._get_conn()
        cursor = conn.execute(sql, params)
        conn.commit()
        return cursor

    def fetchone(self, sql: str, params: tuple = ()) -> dict | None:
        cursor = self._get_conn().execute(sql, params)
        row = cursor.fetchone()
        return dict(row) if row else None

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict]:
        cursor = self._get_conn().execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    def create_recording(self, title: str, file_path: str, duration: int,
                         audio_parts: list[str] | None = None) -> int:
        parts_json = json.dumps(audio_parts) if audio_parts else None
        cursor = self.execute(
            "INSERT INTO recordings (title, file_path, duration, audio_parts) VALUES (?, ?, ?, ?)",
            (title, file_path, duration, parts_json),
        )
        return cursor.lastrowid

    def get_recording(self, recording_id: int) -> dict | None:
        return self.fetchone("SELECT * FROM recordings WHERE id = ?", (recording_id,))

    def list_recordings(self) -> list[dict]:
        return self.fetchall("SELECT * FROM recordings ORDER BY created_at DESC, id DESC")

    def update_recording(self, recording_id: int, **fields) -> dict | None:
        if not fields:
            return self.get_recording(recording_id)
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Campos nao atualizaveis: {', '.join(sorted(unknown))}")
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        values = list(fields.values()) + [recording_id]
        self.execute(
            f"UPDATE recordings SET {set_clause}, updated_at = datetime('now', 'localtime') WHERE id = ?",
            tuple(values),
        )
        return self.get_recording(recording_id)

    def update_title(self, recording_id: int, title: str) -> dict | None:
        return self.update_recording(recording_id, title=title)

    def update_transcription(self, recording_id: int, transcription: str) -> dict | None:
        return self.update_recording(recording_id, transcription=transcription)

    def update_dialogue(self, recording_id: int, dialogue: str) -> dict | None:
        return self.update_recording(recording_id, dialogue=dialogue)

    def update_dossier(self, recording_id: int, dossier: str) -> dict | None:
        return self.update_recording(recording_id, dossier=dossier)

    def delete_recording(self, recording_id: int) -> bool:
        cursor = self.execute("DELETE FROM recordings WHERE id = ?", (recording_id,))
        return cursor.rowcount > 0
