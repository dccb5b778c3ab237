SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS recordings (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    title         TEXT NOT NULL,
    file_path     TEXT NOT NULL,
    audio_parts   TEXT,
    duration      INTEGER NOT NULL DEFAULT 0,
    transcription TEXT,
    dialogue      TEXT,
    dossier       TEXT,
    created_at    TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at    TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);
"""

# Colunas adicionadas depois da primeira versao do esquema
MIGRATIONS = {
    "audio_parts": "ALTER TABLE recordings ADD COLUMN audio_parts TEXT",
    "dialogue": "ALTER TABLE recordings ADD COLUMN dialogue TEXT",
}

UPDATABLE_FIELDS = ("title", "transcription", "dialogue", "dossier")
