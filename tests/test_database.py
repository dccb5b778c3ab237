import json
import sqlite3

import pytest

from db.database import Database, get_audio_files, get_audio_parts


@pytest.fixture
def db(tmp_path):
    return Database(tmp_path / "teste.db")


def test_create_and_get_recording(db):
    rec_id = db.create_recording("Atendimento", "/r/full.mp3", 42, ["/r/001.wav", "/r/002.wav"])

    rec = db.get_recording(rec_id)

    assert rec["title"] == "Atendimento"
    assert rec["duration"] == 42
    assert json.loads(rec["audio_parts"]) == ["/r/001.wav", "/r/002.wav"]
    assert rec["transcription"] is None
    assert rec["dialogue"] is None
    assert rec["created_at"]


def test_recording_without_parts_stores_null(db):
    rec_id = db.create_recording("Atendimento", "/r/001.wav", 5)

    assert db.get_recording(rec_id)["audio_parts"] is None


def test_list_recordings_newest_first(db):
    first = db.create_recording("Primeiro", "/a.wav", 1)
    second = db.create_recording("Segundo", "/b.wav", 2)

    assert [r["id"] for r in db.list_recordings()] == [second, first]


def test_update_fields(db):
    rec_id = db.create_recording("Atendimento", "/a.wav", 1)

    db.update_title(rec_id, "Contrato de locacao")
    db.update_transcription(rec_id, "texto")
    db.update_dialogue(rec_id, '{"diarized": true, "segments": [], "plainText": ""}')
    rec = db.update_dossier(rec_id, "dossie")

    assert rec["title"] == "Contrato de locacao"
    assert rec["transcription"] == "texto"
    assert rec["dialogue"].startswith('{"diarized": true')
    assert rec["dossier"] == "dossie"


def test_update_rejects_unknown_fields(db):
    rec_id = db.create_recording("Atendimento", "/a.wav", 1)

    with pytest.raises(ValueError):
        db.update_recording(rec_id, file_path="/outro.wav")


def test_delete_recording(db):
    rec_id = db.create_recording("Atendimento", "/a.wav", 1)

    assert db.delete_recording(rec_id) is True
    assert db.get_recording(rec_id) is None
    assert db.delete_recording(rec_id) is False


def test_migrates_old_schema(tmp_path):
    path = tmp_path / "antigo.db"
    conn = sqlite3.connect(str(path))
    conn.execute("""
        CREATE TABLE recordings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            file_path TEXT NOT NULL,
            duration INTEGER NOT NULL DEFAULT 0,
            transcription TEXT,
            dossier TEXT,
            created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
            updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
        )
    """)
    conn.execute("INSERT INTO recordings (title, file_path) VALUES ('Antiga', '/velha.wav')")
    conn.commit()
    conn.close()

    db = Database(path)
    old = db.list_recordings()[0]

    assert old["audio_parts"] is None
    assert old["dialogue"] is None
    assert get_audio_parts(old) == ["/velha.wav"]
    new_id = db.create_recording("Nova", "/full.mp3", 3, ["/p1.wav"])
    assert get_audio_parts(db.get_recording(new_id)) == ["/p1.wav"]


def test_audio_parts_fall_back_to_file_path():
    assert get_audio_parts({"file_path": "/a.wav", "audio_parts": None}) == ["/a.wav"]
    assert get_audio_parts({"file_path": "/a.wav", "audio_parts": "nao e json"}) == ["/a.wav"]
    assert get_audio_parts({"file_path": "/a.wav", "audio_parts": "[]"}) == ["/a.wav"]


def test_audio_files_include_primary_once():
    rec = {"file_path": "/full.mp3", "audio_parts": json.dumps(["/1.wav", "/2.wav"])}
    assert get_audio_files(rec) == ["/full.mp3", "/1.wav", "/2.wav"]

    rec = {"file_path": "/1.wav", "audio_parts": json.dumps(["/1.wav", "/2.wav"])}
    assert get_audio_files(rec) == ["/1.wav", "/2.wav"]
