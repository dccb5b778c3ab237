"""Capture stream contract shared by the recording session and audio backends."""

from dataclasses import dataclass
from pathlib import Path


class PermissionDeniedError(RuntimeError):
    """Acesso ao microfone recusado."""


@dataclass(frozen=True)
class StreamPreset:
    name: str
    sample_rate: int
    channels: int = 1
    bitrate: str = "64k"


# Gravacao integral: fidelidade alta, arquivo principal
FULL_PRESET = StreamPreset(name="full", sample_rate=44100, bitrate="256k")
# Chunks de 5s para transcricao ao vivo: leve para upload rapido
CHUNK_PRESET = StreamPreset(name="chunk", sample_rate=16000, bitrate="64k")


class CaptureStream:
    """One capture stream writing to `path`.

    Lifecycle: start() -> [pause() <-> resume()] -> stop(). After stop()
    the file at `path` is complete and closed.
    """

    def __init__(self, preset: StreamPreset, path: Path):
        self.preset = preset
        self.path = Path(path)

    def start(self):
        raise NotImplementedError

    def pause(self):
        raise NotImplementedError

    def resume(self):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError


class AudioBackend:
    def request_permission(self) -> bool:
        raise NotImplementedError

    def open_stream(self, preset: StreamPreset, path: Path) -> CaptureStream:
        """Prepare a stream; the caller starts it."""
        raise NotImplementedError
