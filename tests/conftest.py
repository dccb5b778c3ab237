import threading
import time
from pathlib import Path

import pytest

from recorder.session import RecordingSession
from recorder.streams import AudioBackend, CaptureStream


class FakeStream(CaptureStream):
    """Grava `<preset>-<index>` no arquivo ao parar."""

    def __init__(self, backend, preset, path, index):
        super().__init__(preset, path)
        self.backend = backend
        self.index = index
        self.content = f"{preset.name}-{index}"
        self.started = False
        self.stopped = False
        self.paused = False

    def start(self):
        self.started = True
        self.backend.opened(self.preset.name)

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def stop(self):
        if self.stopped:
            return
        self.stopped = True
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.content)
        self.backend.closed(self.preset.name)


class FakeBackend(AudioBackend):
    def __init__(self, permission=True, fail_full=False, fail_chunk=False):
        self.permission = permission
        self.fail_full = fail_full
        self.fail_chunk = fail_chunk
        self.streams: list[FakeStream] = []
        self.open = {"full": 0, "chunk": 0}
        self.max_open = {"full": 0, "chunk": 0}
        self._lock = threading.Lock()

    def request_permission(self) -> bool:
        return self.permission

    def open_stream(self, preset, path):
        if preset.name == "full" and self.fail_full:
            raise OSError("gravador integral indisponivel")
        if preset.name == "chunk" and self.fail_chunk:
            raise OSError("gravador de chunks indisponivel")
        stream = FakeStream(self, preset, path, index=len(self.streams))
        self.streams.append(stream)
        return stream

    def opened(self, role):
        with self._lock:
            self.open[role] += 1
            self.max_open[role] = max(self.max_open[role], self.open[role])

    def closed(self, role):
        with self._lock:
            self.open[role] -= 1

    def chunk_streams(self) -> list[FakeStream]:
        return [s for s in self.streams if s.preset.name == "chunk"]


class FakeTranscriber:
    """Transcreve pelo conteudo do arquivo, com atrasos e falhas configuraveis."""

    is_configured = True

    def __init__(self, texts=None, delays=None, failures=()):
        self.texts = texts or {}
        self.delays = delays or {}
        self.failures = set(failures)
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def transcribe(self, audio_path) -> str:
        content = Path(audio_path).read_text()
        with self._lock:
            self.calls.append(content)
        time.sleep(self.delays.get(content, 0))
        if content in self.failures:
            raise RuntimeError(f"falha simulada em {content}")
        return self.texts.get(content, "")


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_session(tmp_path):
    sessions = []

    def _make(backend=None, transcriber=None, **kwargs):
        kwargs.setdefault("chunk_interval", 3600)
        kwargs.setdefault("tick_interval", 3600)
        kwargs.setdefault("full_format", "wav")
        kwargs.setdefault("max_workers", 4)
        kwargs.setdefault("transcription_timeout", 5)
        session = RecordingSession(
            backend or FakeBackend(),
            recordings_dir=tmp_path / "recordings",
            chunks_dir=tmp_path / "chunks",
            capture_dir=tmp_path / "capture",
            transcriber=transcriber,
            **kwargs,
        )
        sessions.append(session)
        return session

    yield _make

    for session in sessions:
        session.close()


def wait_until(predicate, timeout=2.0, interval=0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
