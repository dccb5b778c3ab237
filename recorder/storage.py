"""Filesystem helpers for chunk scratch space and durable recordings."""

import logging
import shutil
import time
from pathlib import Path

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def clear_dir(path: Path) -> Path:
    """Remove tudo dentro de `path` e recria o diretorio vazio."""
    path = Path(path)
    if path.exists():
        shutil.rmtree(path)
    return ensure_dir(path)


def exists(path) -> bool:
    return bool(path) and Path(path).exists()


def move(src, dest) -> str:
    dest = Path(dest)
    ensure_dir(dest.parent)
    shutil.move(str(src), str(dest))
    return str(dest)


def delete(path) -> bool:
    """Apaga um arquivo. Arquivo inexistente nao e erro; retorna False."""
    if not exists(path):
        return False
    Path(path).unlink()
    return True


def delete_all(paths) -> int:
    """Apaga todos os arquivos possiveis; falhas de I/O sao registradas e ignoradas."""
    deleted = 0
    for path in paths:
        try:
            if delete(path):
                deleted += 1
        except OSError as e:
            logger.warning("Nao foi possivel apagar %s: %s", path, e)
    return deleted


def read_bytes(path) -> bytes:
    return Path(path).read_bytes()


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def chunk_filename(seq: int, suffix: str = ".wav") -> str:
    return f"chunk_{seq:04d}_{timestamp_ms()}{suffix}"


def full_recording_filename(stamp: int, suffix: str) -> str:
    return f"gravacao_{stamp}_full{suffix}"


def part_filename(stamp: int, index: int, suffix: str = ".wav") -> str:
    return f"gravacao_{stamp}_{index:03d}{suffix}"
