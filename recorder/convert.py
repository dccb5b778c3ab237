from pathlib import Path

from pydub import AudioSegment


def wav_to_mp3(wav_path: Path, mp3_path: Path, bitrate: str = "256k"):
    """Converte um arquivo WAV para MP3 usando pydub/ffmpeg."""
    audio = AudioSegment.from_wav(str(wav_path))
    audio.export(str(mp3_path), format="mp3", bitrate=bitrate)
