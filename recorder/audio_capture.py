import logging
import struct
import threading
import wave
from pathlib import Path

import pyaudiowpatch as pyaudio

from recorder.streams import AudioBackend, CaptureStream, StreamPreset

logger = logging.getLogger(__name__)

CHUNK_DURATION_MS = 30


def _to_mono(data: bytes, channels: int) -> bytes:
    if channels <= 1:
        return data
    samples = struct.unpack(f"<{len(data) // 2}h", data)
    mono = []
    for i in range(0, len(samples), channels):
        frame_samples = samples[i : i + channels]
        mono.append(int(sum(frame_samples) / channels))
    return struct.pack(f"<{len(mono)}h", *mono)


def _resample(data: bytes, source_rate: int, target_rate: int) -> bytes:
    if source_rate == target_rate:
        return data
    samples = struct.unpack(f"<{len(data) // 2}h", data)
    ratio = target_rate / source_rate
    new_len = int(len(samples) * ratio)
    if new_len <= 0:
        return b""
    resampled = [samples[min(int(i / ratio), len(samples) - 1)] for i in range(new_len)]
    return struct.pack(f"<{len(resampled)}h", *resampled)


class PyAudioStream(CaptureStream):
    """Le o microfone numa thread propria e grava WAV mono 16-bit no preset."""

    def __init__(self, pa: pyaudio.PyAudio, device_info: dict,
                 preset: StreamPreset, path: Path):
        super().__init__(preset, path)
        self._pa = pa
        self._device_info = device_info
        self._running = False
        self._paused = threading.Event()
        self._thread: threading.Thread | None = None
        self._stream = None
        self._wf: wave.Wave_write | None = None

    def start(self):
        device_rate = int(self._device_info["defaultSampleRate"])
        channels = max(1, int(self._device_info["maxInputChannels"]))
        chunk_size = max(1, int(device_rate * CHUNK_DURATION_MS / 1000))

        self.path.parent.mkdir(parents=True, exist_ok=True)
        wf = wave.open(str(self.path), "wb")
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(self.preset.sample_rate)

        try:
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=channels,
                rate=device_rate,
                input=True,
                input_device_index=self._device_info["index"],
                frames_per_buffer=chunk_size,
            )
        except Exception:
            wf.close()
            raise

        self._wf = wf
        self._running = True
        self._thread = threading.Thread(
            target=self._read_loop,
            args=(channels, device_rate, chunk_size),
            name=f"capture-{self.preset.name}",
            daemon=True,
        )
        self._thread.start()

    def _read_loop(self, channels: int, device_rate: int, chunk_size: int):
        while self._running:
            try:
                data = self._stream.read(chunk_size, exception_on_overflow=False)
            except Exception:
                continue
            # Pausado: continua drenando o buffer do dispositivo sem gravar
            if self._paused.is_set():
                continue
            data = _resample(_to_mono(data, channels), device_rate, self.preset.sample_rate)
            self._wf.writeframes(data)

    def pause(self):
        self._paused.set()

    def resume(self):
        self._paused.clear()

    def stop(self):
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except OSError as e:
                logger.warning("Erro fechando stream %s: %s", self.preset.name, e)
            self._stream = None
        if self._wf is not None:
            self._wf.close()
            self._wf = None


class PyAudioBackend(AudioBackend):
    def __init__(self, device_index: int | None = None):
        self._device_index = device_index
        self._pa: pyaudio.PyAudio | None = None

    def _get_pa(self) -> pyaudio.PyAudio:
        if self._pa is None:
            self._pa = pyaudio.PyAudio()
        return self._pa

    def _find_mic_device(self) -> dict | None:
        pa = self._get_pa()
        if self._device_index is not None:
            return pa.get_device_info_by_index(self._device_index)
        try:
            wasapi_info = pa.get_host_api_info_by_type(pyaudio.paWASAPI)
            default_input_idx = wasapi_info["defaultInputDevice"]
            if default_input_idx >= 0:
                return pa.get_device_info_by_index(default_input_idx)
        except OSError:
            pass
        try:
            return pa.get_default_input_device_info()
        except OSError:
            return None

    def request_permission(self) -> bool:
        # No desktop nao ha dialogo de permissao: sem microfone acessivel = negado
        try:
            device = self._find_mic_device()
        except OSError as e:
            logger.warning("Microfone inacessivel: %s", e)
            return False
        if not device or device["maxInputChannels"] < 1:
            return False
        logger.info("Microfone: %s", device["name"])
        return True

    def open_stream(self, preset: StreamPreset, path: Path) -> CaptureStream:
        device = self._find_mic_device()
        if device is None:
            raise OSError("Nenhum microfone encontrado")
        return PyAudioStream(self._get_pa(), device, preset, path)

    def terminate(self):
        if self._pa:
            self._pa.terminate()
            self._pa = None
