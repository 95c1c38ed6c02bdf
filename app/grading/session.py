"""
Teacher-side grading session.

One ``GradingSession`` lives from the moment a teacher opens an activity for
grading until they leave it. It holds the roster, the submission being graded,
per-item scores and manual overrides, and runs the save-and-advance workflow.

State flow::

    NO_SUBMISSION_SELECTED -> SUBMISSION_LOADED -> EDITING -> SAVING -> SAVED
                                     ^                                   |
                                     +------------ next student ---------+
                                                    exit -> EXITED

Nothing is persisted until ``save``; the total shown to the grader is always
recomputed from the per-item scores.
"""
import logging
import math
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Set

from app.core.exceptions import (
    NotFoundError,
    SessionBusyError,
    ValidationFailure,
)
from app.grading.items import normalize_activity, parse_answers, round_grade
from app.grading.notifications import emit_notification
from app.grading.scorer import score_item
from app.grading.submission_flow import submission_doc_id
from app.grading.summary import ACTIVITIES, SUBMISSIONS, GradeOverride, GradeSummaryBuilder
from app.schemas.activities import Activity
from app.schemas.submissions import STATUS_CORRECTED, STATUS_PENDING

logger = logging.getLogger(__name__)

SAVE_ACTIONS = ("stay", "next", "exit")
STATUS_FILTERS = ("all", "pending", "graded")


class SessionState(str, Enum):
    NO_SUBMISSION_SELECTED = "no_submission_selected"
    SUBMISSION_LOADED = "submission_loaded"
    EDITING = "editing"
    SAVING = "saving"
    SAVED = "saved"
    EXITED = "exited"


def run_inline(fn: Callable, *args, **kwargs) -> None:
    fn(*args, **kwargs)


class GradingSession:
    def __init__(self, store, activity: Activity, submissions: List[dict], grader: dict, ai_grader=None):
        self.store = store
        self.activity = activity
        self.submissions = submissions
        self.grader = grader
        self.ai_grader = ai_grader

        self.state = SessionState.NO_SUBMISSION_SELECTED
        self.selected_student_id: Optional[str] = None
        self.scores: Dict[str, float] = {}
        self.overrides: Set[str] = set()
        self.feedback = ""
        self.status_filter = "all"
        self.search_term = ""

        self.is_saving = False
        self.is_grading_all = False
        self.grading_item_ids: Set[str] = set()
        self.notices: List[dict] = []

    @classmethod
    def open(cls, store, activity_id: str, grader: dict, ai_grader=None) -> "GradingSession":
        """Load the activity and its submissions, oldest submission first."""
        activity_doc = store.get(ACTIVITIES, activity_id)
        if not activity_doc:
            raise NotFoundError("Activity", activity_id)

        submissions = store.query(SUBMISSIONS, activity_id=activity_id)
        submissions.sort(key=lambda s: s.get("submission_date") or "")

        return cls(store, normalize_activity(activity_doc), submissions, grader, ai_grader)

    # Notices

    def toast(self, level: str, message: str) -> None:
        self.notices.append({"level": level, "message": message})

    def drain_notices(self) -> List[dict]:
        notices, self.notices = self.notices, []
        return notices

    # Roster

    def set_filter(self, status: Optional[str] = None, search: Optional[str] = None) -> None:
        if status is not None:
            if status not in STATUS_FILTERS:
                raise ValidationFailure(f"Unknown status filter: {status}")
            self.status_filter = status
        if search is not None:
            self.search_term = search

    def roster(self) -> List[dict]:
        """Submissions matching the current status filter and name search."""
        term = self.search_term.lower()

        def matches(submission: dict) -> bool:
            status = submission.get("status")
            if self.status_filter == "pending" and status != STATUS_PENDING:
                return False
            if self.status_filter == "graded" and status != STATUS_CORRECTED:
                return False
            return term in (submission.get("student_name") or "").lower()

        return [s for s in self.submissions if matches(s)]

    def _find_submission(self, student_id: str) -> Optional[dict]:
        for submission in self.submissions:
            if submission.get("student_id") == student_id:
                return submission
        return None

    @property
    def selected(self) -> Optional[dict]:
        if self.selected_student_id is None:
            return None
        return self._find_submission(self.selected_student_id)

    @property
    def answers(self) -> dict:
        selected = self.selected
        return parse_answers(selected.get("content")) if selected else {}

    # Editing

    def select(self, student_id: str) -> None:
        """Load a submission, resuming saved per-item scores where they exist."""
        if self.is_saving:
            raise SessionBusyError("A save is in progress")
        submission = self._find_submission(student_id)
        if submission is None:
            raise NotFoundError("Submission", student_id)

        self.selected_student_id = student_id
        answers = self.answers
        saved_scores = submission.get("scores") or {}

        self.scores = {
            item.id: saved_scores[item.id] if item.id in saved_scores else score_item(item, answers.get(item.id))
            for item in self.activity.items
        }
        self.overrides = set()
        self.feedback = submission.get("feedback") or ""
        self.state = SessionState.SUBMISSION_LOADED

    def _require_selection(self) -> dict:
        selected = self.selected
        if selected is None:
            raise ValidationFailure("Nenhum aluno selecionado.")
        return selected

    def _require_item(self, item_id: str):
        item = self.activity.find_item(item_id)
        if item is None:
            raise NotFoundError("Item", item_id)
        return item

    def is_read_only(self, item) -> bool:
        """Multiple-choice scores are derived unless the grader overrides them."""
        return item.type == "multiple_choice" and item.id not in self.overrides

    def set_override(self, item_id: str, enabled: bool) -> None:
        self._require_selection()
        item = self._require_item(item_id)
        if item.type != "multiple_choice":
            raise ValidationFailure("Only multiple-choice items have a manual override")

        if enabled:
            self.overrides.add(item_id)
        else:
            self.overrides.discard(item_id)
            # Typed value is discarded
            self.scores[item_id] = score_item(item, self.answers.get(item_id))
        self.state = SessionState.EDITING

    def set_score(self, item_id: str, value: float) -> None:
        self._require_selection()
        item = self._require_item(item_id)
        if self.is_read_only(item):
            raise ValidationFailure(f"Item {item_id} is scored automatically; enable the manual override first")
        if value is None or math.isnan(value) or value < 0 or value > item.points:
            raise ValidationFailure(f"Score for item {item_id} must be between 0 and {item.points}")

        self.scores[item_id] = value
        self.state = SessionState.EDITING

    def set_feedback(self, text: str) -> None:
        self._require_selection()
        self.feedback = text
        self.state = SessionState.EDITING

    @property
    def total(self) -> float:
        return round_grade(sum(self.scores.values()))

    # AI assist

    def _item_label(self, item) -> str:
        return f"[IA - Questão {self.activity.items.index(item) + 1}]"

    def _ask_ai(self, item, answer: str):
        """One AI call for one item; returns the clamped grade and feedback."""
        if self.ai_grader is None:
            raise ValidationFailure("AI grading is not available")
        self.grading_item_ids.add(item.id)
        try:
            result = self.ai_grader.grade(item.question, answer, item.points, materia=self.activity.materia)
        finally:
            self.grading_item_ids.discard(item.id)
        grade = max(0, min(result.grade, item.points))
        return grade, result.feedback

    def grade_item_with_ai(self, item_id: str) -> bool:
        """Ask the AI for one text item's score and append its feedback."""
        self._require_selection()
        item = self._require_item(item_id)
        if item.type != "text":
            raise ValidationFailure("Only text items are graded with AI")
        answer = self.answers.get(item_id)
        if not answer:
            return False

        try:
            grade, feedback = self._ask_ai(item, answer)
        except ValidationFailure:
            raise
        except Exception:
            logger.warning("AI grading failed for item %s", item_id, exc_info=True)
            self.toast("error", "Erro ao corrigir com IA.")
            return False

        self.scores[item_id] = grade
        addition = f"\n{self._item_label(item)}: {feedback}"
        self.feedback = self.feedback + addition if self.feedback else addition.strip()
        self.state = SessionState.EDITING
        self.toast("success", "Questão corrigida pela IA!")
        return True

    def grade_all_with_ai(self) -> List[str]:
        """
        Grade every answered text item, one at a time and in item order.

        Feedback accumulates in that order. A failing item keeps its current
        score, gets an error notice, and the loop moves on.
        """
        self._require_selection()
        if self.ai_grader is None:
            raise ValidationFailure("AI grading is not available")

        graded = []
        self.is_grading_all = True
        try:
            answers = self.answers
            accumulated = self.feedback
            for item in self.activity.items:
                if item.type != "text" or not answers.get(item.id):
                    continue
                try:
                    grade, feedback = self._ask_ai(item, answers[item.id])
                except Exception:
                    logger.warning("AI grading failed for item %s", item.id, exc_info=True)
                    self.toast("error", f"Erro ao corrigir a Questão {self.activity.items.index(item) + 1} com IA.")
                    continue
                self.scores[item.id] = grade
                accumulated += f"\n\n{self._item_label(item)}: {feedback}"
                graded.append(item.id)

            self.feedback = accumulated.strip()
            self.state = SessionState.EDITING
            self.toast("success", "Correção automática concluída!")
        finally:
            self.is_grading_all = False
        return graded

    # Saving

    def save(self, action: str = "stay", schedule: Callable = run_inline) -> dict:
        """
        Persist the current grade and move on according to ``action``.

        ``schedule(fn, *args)`` runs the summary rebuild and notification
        without their outcome affecting this save.
        """
        if action not in SAVE_ACTIONS:
            raise ValidationFailure(f"Unknown save action: {action}")
        selected = self._require_selection()
        if self.is_saving:
            raise SessionBusyError("A save is already in progress")

        grade = self.total
        if grade < 0 or grade > self.activity.points:
            raise ValidationFailure(f"Nota final inválida. Máximo: {self.activity.points}")

        # Navigation follows the order the grader was looking at when saving
        visible = self.roster()
        student_ids = [s.get("student_id") for s in visible]
        index = student_ids.index(selected["student_id"]) if selected["student_id"] in student_ids else -1

        previous_state = self.state
        self.is_saving = True
        self.state = SessionState.SAVING
        try:
            payload = {
                "status": STATUS_CORRECTED,
                "grade": grade,
                "feedback": self.feedback,
                "scores": dict(self.scores),
                "graded_at": datetime.utcnow().isoformat(),
                "graded_by": self.grader.get("id"),
            }
            self.store.set(
                SUBMISSIONS,
                submission_doc_id(self.activity.id, selected["student_id"]),
                payload,
                merge=True,
            )
        except Exception:
            self.state = previous_state
            self.toast("error", "Erro ao salvar nota.")
            raise
        finally:
            self.is_saving = False

        was_pending = selected.get("status") == STATUS_PENDING
        selected.update(payload)
        self.state = SessionState.SAVED
        self.toast("success", "Correção salva!")
        logger.info(
            "Graded activity %s for student %s: %s", self.activity.id, selected["student_id"], grade
        )

        builder = GradeSummaryBuilder(self.store)
        schedule(builder.rebuild, self.activity.class_id, selected["student_id"], GradeOverride(self.activity.id, grade))
        schedule(
            emit_notification,
            self.store,
            user_id=selected["student_id"],
            title="Atividade Corrigida",
            text=f'Sua atividade "{self.activity.title}" foi corrigida. Nota: {grade}',
            actor_id=self.grader.get("id"),
            actor_name=self.grader.get("full_name") or "",
            class_id=self.activity.class_id,
            activity_id=self.activity.id,
        )
        if was_pending:
            schedule(self._decrement_pending)

        next_student_id = None
        if action == "next":
            if index != -1 and index < len(visible) - 1:
                next_student_id = student_ids[index + 1]
                self.select(next_student_id)
            else:
                action = "exit"
        if action == "exit":
            self.exit()

        return {"grade": grade, "action": action, "next_student_id": next_student_id}

    def _decrement_pending(self) -> None:
        try:
            doc = self.store.get(ACTIVITIES, self.activity.id) or {}
            pending = max((doc.get("pending_submission_count") or 1) - 1, 0)
            self.store.update(ACTIVITIES, self.activity.id, {"pending_submission_count": pending})
        except Exception:
            logger.exception("Failed to update pending count for activity %s", self.activity.id)

    def exit(self) -> None:
        self.selected_student_id = None
        self.scores = {}
        self.overrides = set()
        self.feedback = ""
        self.state = SessionState.EXITED

    def snapshot(self) -> dict:
        selected = self.selected
        return {
            "state": self.state.value,
            "activity_id": self.activity.id,
            "activity_title": self.activity.title,
            "max_points": self.activity.points,
            "status_filter": self.status_filter,
            "search_term": self.search_term,
            "selected_student_id": self.selected_student_id,
            "student_name": selected.get("student_name") if selected else None,
            "answers": self.answers,
            "scores": dict(self.scores),
            "read_only_items": [item.id for item in self.activity.items if selected and self.is_read_only(item)],
            "overrides": sorted(self.overrides),
            "feedback": self.feedback,
            "total": self.total,
            "is_saving": self.is_saving,
            "is_grading_all": self.is_grading_all,
            "grading_item_ids": sorted(self.grading_item_ids),
        }
