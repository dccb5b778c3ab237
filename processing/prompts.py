DIARIZATION_PROMPT = """Voce e um assistente especializado em analise de dialogos \
juridicos. Abaixo esta a transcricao com timestamps de um atendimento juridico \
(consulta entre advogado e cliente).

Sua tarefa:
1. Identificar quem esta falando em cada trecho (normalmente "Advogado" e \
"Cliente", mas pode haver mais interlocutores)
2. Agrupar falas continuas do mesmo falante em um unico segmento
3. Usar o contexto para identificar os falantes (o advogado geralmente faz \
perguntas, orienta e usa linguagem tecnica; o cliente narra fatos e faz \
perguntas leigas)

Retorne APENAS um JSON array valido (sem markdown, sem comentarios) com o \
seguinte formato:
[
  {"speaker": "Advogado", "start": "00:00", "end": "00:08", "text": "Bom dia, como posso ajudar?"},
  {"speaker": "Cliente", "start": "00:09", "end": "00:22", "text": "Eu tenho um problema com meu contrato de trabalho..."}
]

Regras:
- Use timestamps no formato MM:SS
- Agrupe falas consecutivas do mesmo falante
- Mantenha a transcricao fiel ao original
- Se nao conseguir distinguir falantes, use "Interlocutor 1", "Interlocutor 2", etc.

TRANSCRICAO COM TIMESTAMPS:
"""

DOSSIER_PROMPT = """Voce e um assistente juridico especializado. Com base na \
transcricao abaixo de um atendimento juridico, elabore um dossie estruturado \
contendo:

## DOSSIE DO ATENDIMENTO

### 1. IDENTIFICACAO DAS PARTES
- Identifique todas as partes mencionadas (cliente, advogado, testemunhas, \
partes adversas, etc.)

### 2. RESUMO DOS FATOS
- Relate cronologicamente os fatos narrados durante o atendimento

### 3. QUESTOES JURIDICAS IDENTIFICADAS
- Liste as questoes juridicas relevantes identificadas na conversa

### 4. DOCUMENTOS MENCIONADOS
- Liste todos os documentos citados durante o atendimento

### 5. PROVIDENCIAS E ENCAMINHAMENTOS
- Liste as acoes a serem tomadas, prazos mencionados e proximos passos

### 6. OBSERVACOES IMPORTANTES
- Destaque pontos criticos, contradicoes ou informacoes que merecem atencao \
especial

---

TRANSCRICAO DO ATENDIMENTO:
"""

TITLE_PROMPT = """Com base na transcricao abaixo de uma reuniao juridica, gere \
um titulo curto (maximo 8 palavras) que resuma o assunto.
O titulo deve comecar com "Reuniao" e mencionar o tema principal ou a pessoa \
envolvida.
Exemplos: "Reuniao sobre financiamento imobiliario", "Reuniao de Fulana sobre golpe".
Retorne APENAS o titulo, sem aspas, sem explicacoes.

TRANSCRICAO:
{transcription}"""

GEMINI_TRANSCRIBE_PROMPT = """Transcreva este audio na integra em portugues. \
Retorne APENAS a transcricao, sem comentarios adicionais."""

GEMINI_TIMESTAMPED_PROMPT = """Transcreva este audio em portugues com timestamps. \
Retorne APENAS um JSON com o formato:
{"segments": [{"start": 0.0, "end": 3.5, "text": "texto aqui"}], "text": "texto completo aqui"}

Onde start/end sao segundos decimais. Retorne o JSON puro sem markdown."""
