"""
AI-assisted grading and question drafting through the Gemini API.

The grading session treats this as an opaque, fallible collaborator:
``grade(question, answer, max_points, materia)`` either returns a clamped
``GradingResult`` or raises ``AIAssistError``.
"""
import json
import logging
from typing import List, Optional

from google import genai
from google.genai import types
from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import AIAssistError
from app.schemas.activities import DEFAULT_MATERIA, TextItem

logger = logging.getLogger(__name__)

EMPTY_ANSWER_FEEDBACK = "Não houve resposta para esta questão."
MISSING_FEEDBACK = "Sem feedback gerado."

GRADING_PROMPT = """
Atue como um professor experiente de {materia}. Avalie a resposta do aluno para a questão abaixo.

---
Enunciado: "{question}"
Resposta do Aluno: "{answer}"
Valor da Questão: {max_points} pontos
---

Avalie com rigor acadêmico, mas com proporcionalidade. Reconheça os acertos, mesmo parciais,
diferencie erros conceituais de informações incompletas e explique o que falta para uma
resposta plenamente adequada. Ao final, atribua uma nota coerente com o desempenho global.

Retorne um JSON com:
- "grade": nota sugerida (número entre 0 e {max_points}).
- "feedback": comentário construtivo e didático para o aluno, justificando a nota.
"""

DRAFT_PROMPT = """
Elabore {count} questões discursivas curtas e didáticas sobre o tema "{topic}"
para a disciplina de {materia}. Retorne um JSON com a lista "questions",
cada uma contendo apenas o enunciado em "question".
"""


class GradingResult(BaseModel):
    grade: float
    feedback: str


class _DraftQuestion(BaseModel):
    question: str


class _DraftPayload(BaseModel):
    questions: List[_DraftQuestion]


class GeminiGrader:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self._client = None

    def _get_client(self):
        if not self.api_key:
            raise AIAssistError("API Key de IA não configurada.")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _generate_json(self, prompt: str, schema) -> dict:
        client = self._get_client()
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=schema,
                ),
            )
            text = response.text
            if not text:
                raise ValueError("empty response from model")
            return json.loads(text)
        except Exception as e:
            logger.error("Gemini request failed: %s", e)
            raise AIAssistError("Falha ao conectar com o serviço de Inteligência Artificial.") from e

    def grade(self, question: str, answer: str, max_points: float, materia: str = DEFAULT_MATERIA) -> GradingResult:
        if not answer or not str(answer).strip():
            return GradingResult(grade=0, feedback=EMPTY_ANSWER_FEEDBACK)

        payload = self._generate_json(
            GRADING_PROMPT.format(
                materia=materia,
                question=question,
                answer=answer,
                max_points=max_points,
            ),
            GradingResult,
        )

        grade = payload.get("grade")
        if not isinstance(grade, (int, float)) or isinstance(grade, bool):
            grade = 0
        grade = max(0, min(grade, max_points))

        return GradingResult(grade=grade, feedback=payload.get("feedback") or MISSING_FEEDBACK)

    def draft_text_items(self, topic: str, materia: str, count: int = 3, points_per_item: float = 1) -> List[TextItem]:
        payload = self._generate_json(
            DRAFT_PROMPT.format(count=count, topic=topic, materia=materia),
            _DraftPayload,
        )
        questions = [q.get("question") for q in payload.get("questions") or [] if q.get("question")]
        return [
            TextItem(id=f"q{index}", question=text, points=points_per_item)
            for index, text in enumerate(questions[:count], start=1)
        ]
