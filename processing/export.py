from datetime import datetime
from html import escape

from processing.segments import is_diarized_transcription

EXPORT_KINDS = {
    "transcription": "Transcricao",
    "dialogue": "Dialogo",
    "dossier": "Dossie",
}

HTML_TEMPLATE = """<html>
  <head>
    <meta charset="utf-8" />
    <title>{title}</title>
    <style>
      body {{ font-family: Arial, sans-serif; padding: 40px; color: #333; line-height: 1.6; }}
      h1 {{ color: #1a1a2e; border-bottom: 2px solid #6c63ff; padding-bottom: 8px; }}
      .meta {{ color: #666; font-size: 14px; margin-bottom: 24px; }}
      .speaker {{ color: #6c63ff; }}
      .time {{ color: #999; font-size: 12px; margin-left: 8px; }}
    </style>
  </head>
  <body>
    <h1>{title}</h1>
    <p class="meta">Data: {date} | Duracao: {duration}</p>
    {content}
  </body>
</html>
"""


def format_duration(seconds: int) -> str:
    seconds = int(seconds or 0)
    hrs, rem = divmod(seconds, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs:02d}:{mins:02d}:{secs:02d}"
    return f"{mins:02d}:{secs:02d}"


def _format_date(created_at: str | None) -> str:
    if not created_at:
        return "-"
    try:
        return datetime.fromisoformat(created_at).strftime("%d/%m/%Y")
    except ValueError:
        return created_at[:10]


def _paragraphs(text: str) -> str:
    return "<div>" + escape(text).replace("\n", "<br/>") + "</div>"


def export_text(recording: dict, kind: str) -> str:
    """Plain text for one tab of a recording; raises ValueError when empty."""
    if kind not in EXPORT_KINDS:
        raise ValueError(f"Tipo de exportacao invalido: {kind}")
    value = recording.get(kind)
    if kind == "dialogue":
        diarized = is_diarized_transcription(value)
        if diarized:
            value = diarized.as_text()
    if not value:
        raise ValueError(f"{EXPORT_KINDS[kind]} indisponivel para esta gravacao")
    return value


def export_html(recording: dict, kind: str) -> str:
    text = export_text(recording, kind)
    diarized = is_diarized_transcription(recording.get("dialogue")) if kind == "dialogue" else None
    if diarized:
        blocks = []
        for seg in diarized.segments:
            span = seg.start if not seg.end or seg.end == seg.start else f"{seg.start} - {seg.end}"
            blocks.append(
                '<div style="margin-bottom: 12px;">'
                f'<strong class="speaker">{escape(seg.speaker)}</strong>'
                f'<span class="time">{escape(span)}</span>'
                f'<p style="margin: 4px 0 0 0;">{escape(seg.text)}</p>'
                "</div>"
            )
        content = "\n".join(blocks)
    else:
        content = _paragraphs(text)
    return HTML_TEMPLATE.format(
        title=escape(f"{EXPORT_KINDS[kind]} - {recording.get('title', '')}"),
        date=_format_date(recording.get("created_at")),
        duration=format_duration(recording.get("duration", 0)),
        content=content,
    )


def render_export(recording: dict, kind: str, fmt: str = "txt") -> str:
    if fmt == "html":
        return export_html(recording, kind)
    if fmt == "txt":
        return export_text(recording, kind)
    raise ValueError(f"Formato de exportacao invalido: {fmt}")
