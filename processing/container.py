import logging
from pathlib import Path

logger = logging.getLogger(__name__)

BRAND_OFFSET = 8
BRAND_3GP4 = b"3gp4"
BRAND_ISOM = b"isom"


def patch_ftyp_brand(audio_path) -> bool:
    """Troca a marca ftyp "3gp4" por "isom" no proprio arquivo.

    Alguns gravadores Android geram MP4 com a marca 3GP, que a OpenAI rejeita
    como container nao suportado. So os 4 bytes da marca mudam; o audio fica
    identico. Retorna True se o arquivo foi alterado.
    """
    path = Path(audio_path)
    with open(path, "r+b") as fh:
        fh.seek(BRAND_OFFSET)
        if fh.read(len(BRAND_3GP4)) != BRAND_3GP4:
            return False
        fh.seek(BRAND_OFFSET)
        fh.write(BRAND_ISOM)
    logger.info("Cabecalho 3gp4 corrigido para isom: %s", path.name)
    return True
