import pytest

from config import AISettings
from processing import providers
from processing.prompts import DOSSIER_PROMPT
from processing.summarizer import Summarizer

SETTINGS = AISettings(provider="gemini", api_key="g", transcription_model="gemini-2.0-flash",
                      dossier_model="gemini-1.5-pro")


def test_dossier_prompt_and_model(monkeypatch):
    calls = []

    def fake_generate(provider, api_key, prompt, model):
        calls.append((provider, prompt, model))
        return "Resumo"

    monkeypatch.setattr(providers, "generate_text", fake_generate)

    assert Summarizer(SETTINGS).dossier("Cliente quer revisar contrato.") == "Resumo"
    assert calls == [("gemini", DOSSIER_PROMPT + "Cliente quer revisar contrato.", "gemini-1.5-pro")]


def test_title_is_cleaned(monkeypatch):
    monkeypatch.setattr(providers, "generate_text", lambda *args: '  "Revisao contratual"\n')

    assert Summarizer(SETTINGS).title("texto") == "Revisao contratual"


@pytest.mark.parametrize("text", ["", "   "])
def test_empty_transcription_is_rejected(text):
    summarizer = Summarizer(SETTINGS)
    with pytest.raises(ValueError):
        summarizer.dossier(text)
    with pytest.raises(ValueError):
        summarizer.title(text)
