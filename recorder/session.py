import concurrent.futures
import logging
import threading
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import config
from recorder import storage
from recorder.convert import wav_to_mp3
from recorder.streams import (
    CHUNK_PRESET,
    FULL_PRESET,
    AudioBackend,
    CaptureStream,
    PermissionDeniedError,
    StreamPreset,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPING = "stopping"


class SessionStateError(RuntimeError):
    pass


@dataclass(frozen=True)
class RecordingResult:
    full_path: str
    path: str
    parts: tuple[str, ...]
    duration_secs: int
    transcription: str


class Ticker:
    """Chama `callback` a cada `interval` segundos numa thread daemon.

    Cada start() cria um Event novo, entao uma thread antiga que acorda
    depois de um stop() nunca volta a disparar.
    """

    def __init__(self, interval: float, callback, name: str):
        self.interval = interval
        self._callback = callback
        self._name = name
        self._stop_event: threading.Event | None = None

    @property
    def running(self) -> bool:
        return self._stop_event is not None and not self._stop_event.is_set()

    def start(self):
        if self.running:
            return
        stop_event = threading.Event()
        self._stop_event = stop_event
        threading.Thread(
            target=self._run, args=(stop_event,), name=self._name, daemon=True
        ).start()

    def stop(self):
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None

    def _run(self, stop_event: threading.Event):
        while not stop_event.wait(self.interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Erro no ticker %s", self._name)


class TranscriptAccumulator:
    """Junta os textos dos chunks na ordem de gravacao, nao na de chegada.

    Cada chunk despachado reserva um numero de sequencia; um texto so entra
    na transcricao quando todos os anteriores ja foram entregues (mesmo que
    vazios, no caso de falha). Cada gravacao usa um acumulador proprio.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._next_seq = 0
        self._next_to_apply = 0
        self._arrived: dict[int, str] = {}
        self._texts: list[str] = []

    def reserve(self) -> int:
        with self._lock:
            seq = self._next_seq
            self._next_seq += 1
            return seq

    def deliver(self, seq: int, text: str | None):
        with self._lock:
            # Entrega atrasada de um chunk ja descartado por skip_pending()
            if seq < self._next_to_apply:
                return
            self._arrived[seq] = (text or "").strip()
            self._apply_ready()

    def skip_pending(self) -> int:
        """Marca como vazios os chunks ainda sem resultado e aplica o resto."""
        with self._lock:
            skipped = 0
            for seq in range(self._next_to_apply, self._next_seq):
                if seq not in self._arrived:
                    self._arrived[seq] = ""
                    skipped += 1
            self._apply_ready()
            return skipped

    def _apply_ready(self):
        while self._next_to_apply in self._arrived:
            chunk_text = self._arrived.pop(self._next_to_apply)
            if chunk_text:
                self._texts.append(chunk_text)
            self._next_to_apply += 1

    @property
    def pending(self) -> int:
        with self._lock:
            return self._next_seq - self._next_to_apply

    @property
    def text(self) -> str:
        with self._lock:
            return " ".join(self._texts)


class RecordingSession:
    """Gravacao dupla: stream integral continuo + stream de chunks rotativo.

    O stream integral gera o arquivo principal. O stream de chunks e fechado
    e reaberto a cada `chunk_interval` segundos; cada chunk fechado e
    transcrito em background para a transcricao ao vivo. Chamadas a
    start/pause/resume/stop devem ser serializadas pelo chamador.
    """

    def __init__(
        self,
        backend: AudioBackend,
        recordings_dir: Path = config.RECORDINGS_DIR,
        chunks_dir: Path = config.CHUNKS_DIR,
        capture_dir: Path = config.CAPTURE_DIR,
        transcriber=None,
        chunk_interval: float = config.CHUNK_DURATION_SECS,
        tick_interval: float = config.TICK_INTERVAL_SECS,
        full_format: str = config.FULL_AUDIO_FORMAT,
        transcription_timeout: float = config.STOP_TRANSCRIPTION_TIMEOUT_SECS,
        max_workers: int = config.LIVE_TRANSCRIPTION_WORKERS,
    ):
        self.backend = backend
        self.recordings_dir = Path(recordings_dir)
        self.chunks_dir = Path(chunks_dir)
        self.capture_dir = Path(capture_dir)
        self.transcriber = transcriber
        self.live_transcription_enabled = True
        self.full_format = full_format
        self.transcription_timeout = transcription_timeout

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._elapsed = 0
        self._full_stream: CaptureStream | None = None
        self._chunk_stream: CaptureStream | None = None
        self._closed_chunks: list[str] = []
        self._chunk_seq = 0
        self._accumulator = TranscriptAccumulator()
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="chunk-transcriber"
        )
        self._inflight: set[concurrent.futures.Future] = set()
        self._stopped = threading.Event()
        self._stopped.set()
        self._last_result: RecordingResult | None = None

        self._clock = Ticker(tick_interval, self.tick, "elapsed-ticker")
        self._rotator = Ticker(chunk_interval, self.rotate_chunk, "chunk-rotator")

    # -- Estado observavel --

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state != SessionState.IDLE

    @property
    def is_paused(self) -> bool:
        return self._state == SessionState.PAUSED

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def live_transcript(self) -> str:
        return self._accumulator.text

    @property
    def closed_chunk_paths(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._closed_chunks)

    @property
    def has_full_stream(self) -> bool:
        return self._full_stream is not None

    @property
    def has_chunk_stream(self) -> bool:
        return self._chunk_stream is not None

    # -- Ciclo de vida --

    def start(self):
        with self._lock:
            if self._state != SessionState.IDLE:
                raise SessionStateError("Ja existe uma gravacao em curso")
            if not self.backend.request_permission():
                raise PermissionDeniedError("Permissao de microfone negada")

            self._elapsed = 0
            self._closed_chunks = []
            self._chunk_seq = 0
            self._accumulator = TranscriptAccumulator()
            self._inflight = set()
            self._last_result = None

            storage.clear_dir(self.chunks_dir)
            storage.clear_dir(self.capture_dir)

            try:
                self._full_stream = self._open_stream(FULL_PRESET)
                logger.info("Gravacao integral iniciada (%s)", FULL_PRESET.bitrate)
            except Exception as e:
                logger.warning("Gravacao integral nao iniciou, seguindo so com chunks: %s", e)
                self._full_stream = None

            try:
                self._chunk_stream = self._open_stream(CHUNK_PRESET)
            except Exception:
                self._discard_full_stream()
                raise

            self._state = SessionState.RECORDING
            self._stopped.clear()
            self._clock.start()
            self._rotator.start()
            logger.info("Gravacao iniciada")

    def pause(self):
        with self._lock:
            if self._state != SessionState.RECORDING:
                raise SessionStateError("Nenhuma gravacao ativa para pausar")
            self._clock.stop()
            self._rotator.stop()
            for stream in self._open_streams():
                stream.pause()
            self._state = SessionState.PAUSED
            logger.info("Gravacao pausada em %ds", self._elapsed)

    def resume(self):
        with self._lock:
            if self._state != SessionState.PAUSED:
                raise SessionStateError("A gravacao nao esta pausada")
            for stream in self._open_streams():
                stream.resume()
            self._state = SessionState.RECORDING
            self._clock.start()
            self._rotator.start()
            logger.info("Gravacao retomada")

    def stop(self) -> RecordingResult:
        with self._lock:
            if self._state == SessionState.IDLE:
                raise SessionStateError("Nenhuma gravacao em curso")
            already_stopping = self._state == SessionState.STOPPING
            if not already_stopping:
                self._state = SessionState.STOPPING
                self._clock.stop()
                self._rotator.stop()

        if already_stopping:
            self._stopped.wait()
            return self._last_result

        try:
            return self._finalize()
        finally:
            with self._lock:
                self._full_stream = None
                self._chunk_stream = None
                self._state = SessionState.IDLE
            self._stopped.set()

    def close(self):
        if self.is_recording and self._state != SessionState.STOPPING:
            try:
                self.stop()
            except Exception as e:
                logger.error("Erro encerrando gravacao: %s", e)
        self._executor.shutdown(wait=False)

    # -- Tickers --

    def tick(self):
        with self._lock:
            if self._state == SessionState.RECORDING:
                self._elapsed += 1

    def rotate_chunk(self) -> str | None:
        """Fecha o chunk atual, abre o proximo e despacha a transcricao."""
        with self._lock:
            if self._state != SessionState.RECORDING:
                return None
            chunk_path = None
            try:
                chunk_path = self._close_chunk_stream()
            except Exception as e:
                logger.error("Erro fechando chunk: %s", e)
            # O novo stream abre antes de despachar a transcricao
            try:
                self._chunk_stream = self._open_stream(CHUNK_PRESET)
            except Exception as e:
                logger.error("Erro abrindo novo chunk: %s", e)
            accumulator = self._accumulator
            seq = self._reserve_transcription(chunk_path)

        if seq is not None:
            self._dispatch(accumulator, seq, chunk_path)
        return chunk_path

    # -- Internos --

    def _open_streams(self) -> list[CaptureStream]:
        return [s for s in (self._full_stream, self._chunk_stream) if s is not None]

    def _open_stream(self, preset: StreamPreset) -> CaptureStream:
        path = self.capture_dir / f"{preset.name}_{uuid.uuid4().hex}.wav"
        stream = self.backend.open_stream(preset, path)
        stream.start()
        return stream

    def _discard_full_stream(self):
        stream = self._full_stream
        self._full_stream = None
        if stream is None:
            return
        try:
            stream.stop()
            storage.delete(stream.path)
        except Exception as e:
            logger.warning("Erro descartando gravacao integral: %s", e)

    def _close_chunk_stream(self) -> str | None:
        stream = self._chunk_stream
        if stream is None:
            return None
        self._chunk_stream = None
        stream.stop()
        if not storage.exists(stream.path):
            return None
        self._chunk_seq += 1
        dest = self.chunks_dir / storage.chunk_filename(self._chunk_seq, stream.path.suffix)
        path = storage.move(stream.path, dest)
        self._closed_chunks.append(path)
        return path

    def _live_transcription_active(self) -> bool:
        if not self.live_transcription_enabled or self.transcriber is None:
            return False
        return getattr(self.transcriber, "is_configured", True)

    def _reserve_transcription(self, chunk_path: str | None) -> int | None:
        if chunk_path and self._live_transcription_active():
            return self._accumulator.reserve()
        return None

    def _dispatch(self, accumulator: TranscriptAccumulator, seq: int, chunk_path: str):
        future = self._executor.submit(self._transcribe_chunk, accumulator, seq, chunk_path)
        self._inflight.add(future)
        future.add_done_callback(self._inflight.discard)

    def _transcribe_chunk(self, accumulator: TranscriptAccumulator, seq: int, chunk_path: str):
        text = None
        try:
            text = self.transcriber.transcribe(chunk_path)
        except Exception as e:
            logger.warning("Falha na transcricao do chunk %s: %s", Path(chunk_path).name, e)
        finally:
            accumulator.deliver(seq, text)

    def _wait_inflight(self):
        pending = [f for f in list(self._inflight) if not f.done()]
        if not pending:
            return
        _, not_done = concurrent.futures.wait(pending, timeout=self.transcription_timeout)
        if not_done:
            logger.warning("%d transcricoes de chunk nao terminaram a tempo", len(not_done))

    def _save_full_recording(self, stamp: int) -> str:
        stream = self._full_stream
        self._full_stream = None
        if stream is None:
            return ""
        try:
            stream.stop()
            if not storage.exists(stream.path):
                return ""
            storage.ensure_dir(self.recordings_dir)
            if self.full_format == "mp3":
                dest = self.recordings_dir / storage.full_recording_filename(stamp, ".mp3")
                try:
                    wav_to_mp3(stream.path, dest, bitrate=FULL_PRESET.bitrate)
                    storage.delete(stream.path)
                    path = str(dest)
                except Exception as e:
                    logger.warning("Conversao para MP3 falhou, mantendo WAV: %s", e)
                    storage.delete(dest)
                    path = storage.move(
                        stream.path,
                        self.recordings_dir / storage.full_recording_filename(stamp, ".wav"),
                    )
            else:
                path = storage.move(
                    stream.path,
                    self.recordings_dir / storage.full_recording_filename(stamp, stream.path.suffix),
                )
            logger.info("Gravacao integral salva: %s", path)
            return path
        except Exception as e:
            logger.error("Erro ao salvar gravacao integral: %s", e)
            return ""

    def _persist_parts(self, stamp: int) -> list[str]:
        parts = []
        for index, chunk in enumerate(self._closed_chunks, start=1):
            if not storage.exists(chunk):
                continue
            dest = self.recordings_dir / storage.part_filename(stamp, index, Path(chunk).suffix)
            try:
                parts.append(storage.move(chunk, dest))
            except OSError as e:
                logger.error("Erro movendo parte %s: %s", chunk, e)
        return parts

    def _finalize(self) -> RecordingResult:
        duration = self._elapsed
        stamp = storage.timestamp_ms()

        with self._lock:
            full_path = self._save_full_recording(stamp)
            trailing = None
            try:
                trailing = self._close_chunk_stream()
            except Exception as e:
                logger.error("Erro salvando ultimo chunk: %s", e)
            accumulator = self._accumulator
            seq = self._reserve_transcription(trailing)

        # O ultimo chunk e transcrito de forma sincrona
        if seq is not None:
            self._transcribe_chunk(accumulator, seq, trailing)
        self._wait_inflight()
        # Chunks que estouraram o tempo ficam de fora; o resto segue na ordem
        accumulator.skip_pending()

        parts = self._persist_parts(stamp)
        primary = full_path or (parts[0] if parts else "")
        result = RecordingResult(
            full_path=full_path,
            path=primary,
            parts=tuple(parts),
            duration_secs=duration,
            transcription=accumulator.text,
        )
        self._last_result = result
        logger.info(
            "Gravacao finalizada: %ds, %d partes, principal=%s",
            duration, len(parts), primary or "-",
        )
        return result
