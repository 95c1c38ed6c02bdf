"""
Boundary adapters for activity documents and answer payloads.

Activities written before structured items existed carry a flat ``questions``
list. ``normalize_items`` maps those to single-point multiple-choice items so
nothing past this module needs to know which shape a document had.
"""
import json
import math
from typing import List

from pydantic import TypeAdapter

from app.schemas.activities import (
    Activity,
    ActivityItem,
    MultipleChoiceItem,
    UNIDADES,
    DEFAULT_UNIDADE,
    DEFAULT_MATERIA,
)

_items_adapter = TypeAdapter(List[ActivityItem])


def _legacy_question_to_item(question: dict) -> MultipleChoiceItem:
    return MultipleChoiceItem(
        id=str(question.get("id")),
        question=question.get("question") or "",
        options=[
            {"id": str(choice.get("id")), "text": choice.get("text") or ""}
            for choice in question.get("choices") or []
        ],
        correct_option_id=(
            str(question["correctAnswerId"])
            if question.get("correctAnswerId") is not None
            else None
        ),
        points=1,
    )


def normalize_items(activity_doc: dict) -> list:
    items = activity_doc.get("items")
    if items:
        return _items_adapter.validate_python(items)

    questions = activity_doc.get("questions")
    if questions:
        return [_legacy_question_to_item(q) for q in questions]

    return []


def normalize_activity(activity_doc: dict) -> Activity:
    """Build a canonical ``Activity`` from a stored document of either shape."""
    items = normalize_items(activity_doc)

    data = {k: v for k, v in activity_doc.items() if k not in ("items", "questions")}
    data["items"] = items
    if data.get("unidade") not in UNIDADES:
        data["unidade"] = DEFAULT_UNIDADE
    if not data.get("materia"):
        data["materia"] = DEFAULT_MATERIA
    if data.get("points") is None:
        data["points"] = sum(item.points for item in items)
    if data.get("grading_config") is None:
        data.pop("grading_config", None)

    return Activity(**data)


def parse_answers(content) -> dict:
    """Decode an answer map; legacy free-text submissions decode to ``{}``."""
    if not content:
        return {}
    try:
        answers = json.loads(content)
    except (TypeError, ValueError):
        return {}
    return answers if isinstance(answers, dict) else {}


def round_grade(value: float) -> float:
    # Half-up to one decimal; round() would use banker's rounding
    return math.floor(value * 10 + 0.5) / 10
