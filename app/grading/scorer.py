"""Automatic per-item scoring."""
from typing import Dict, Iterable


def is_auto_gradable(item) -> bool:
    """Multiple-choice items with a known correct option are scored automatically."""
    return item.type == "multiple_choice" and bool(item.correct_option_id)


def score_item(item, answer) -> float:
    """
    Score one answer against one item.

    Multiple choice earns full points on an exact match with the correct option
    and 0 otherwise; there is no partial credit here. Text items and
    multiple-choice items without a correct option always score 0 until a
    grader sets a value. A missing answer is simply wrong, never an error.
    """
    if not is_auto_gradable(item):
        return 0
    if answer is not None and answer == item.correct_option_id:
        return item.points
    return 0


def auto_score(items: Iterable, answers: dict) -> Dict[str, float]:
    return {item.id: score_item(item, answers.get(item.id)) for item in items}
