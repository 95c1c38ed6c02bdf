"""Student-side submission: automatic score and initial status."""
import logging
from datetime import datetime
from typing import Dict, NamedTuple, Optional

from app.core.exceptions import NotFoundError
from app.grading.items import normalize_activity, parse_answers, round_grade
from app.grading.scorer import auto_score
from app.grading.summary import ACTIVITIES, SUBMISSIONS
from app.schemas.activities import Activity
from app.schemas.submissions import STATUS_CORRECTED, STATUS_PENDING

logger = logging.getLogger(__name__)

AUTO_CORRECTION_FEEDBACK = "Correção automática."


class SubmissionDecision(NamedTuple):
    status: str
    grade: Optional[float]
    feedback: Optional[str]
    graded_at: Optional[str]
    scores: Optional[Dict[str, float]]


class SubmitResult(NamedTuple):
    submission: dict
    activity: Activity
    replaced_corrected: bool  # an earlier graded submission was overwritten


def submission_doc_id(activity_id: str, student_id: str) -> str:
    return f"{activity_id}_{student_id}"


def evaluate_submission(activity: Activity, content: str) -> SubmissionDecision:
    """
    Decide the initial status of a submission.

    Only an activity made entirely of multiple-choice items, configured for
    automatic objective grading, is closed at submit time.
    """
    answers = parse_answers(content)
    auto_close = (
        bool(activity.items)
        and not activity.has_text_items
        and activity.grading_config.objective_questions == "automatic"
    )
    if not auto_close:
        return SubmissionDecision(STATUS_PENDING, None, None, None, None)

    scores = auto_score(activity.items, answers)
    return SubmissionDecision(
        status=STATUS_CORRECTED,
        grade=round_grade(sum(scores.values())),
        feedback=AUTO_CORRECTION_FEEDBACK,
        graded_at=datetime.utcnow().isoformat(),
        scores=scores,
    )


def submit_activity(store, activity_id: str, student: dict, content: str) -> SubmitResult:
    """
    Write the student's submission, replacing any earlier one entirely.

    Returns the stored submission, the activity it belongs to, and whether a
    corrected submission was replaced; the caller schedules notification and
    summary side effects.
    """
    activity_doc = store.get(ACTIVITIES, activity_id)
    if not activity_doc:
        raise NotFoundError("Activity", activity_id)
    activity = normalize_activity(activity_doc)

    decision = evaluate_submission(activity, content)
    doc_id = submission_doc_id(activity_id, student["id"])
    previous = store.get(SUBMISSIONS, doc_id)
    is_first = previous is None
    replaced_corrected = previous is not None and previous.get("status") == STATUS_CORRECTED

    submission = {
        "activity_id": activity_id,
        "class_id": activity.class_id,
        "student_id": student["id"],
        "student_name": student.get("full_name") or "",
        "submission_date": datetime.utcnow().isoformat(),
        "content": content,
        "status": decision.status,
    }
    if decision.status == STATUS_CORRECTED:
        submission["grade"] = decision.grade
        submission["feedback"] = decision.feedback
        submission["graded_at"] = decision.graded_at
        submission["scores"] = decision.scores

    stored = store.set(SUBMISSIONS, doc_id, submission)

    was_pending = previous is not None and previous.get("status") == STATUS_PENDING
    is_pending = decision.status == STATUS_PENDING
    counters = {}
    if is_first:
        counters["submission_count"] = activity.submission_count + 1
    if is_pending and not was_pending:
        counters["pending_submission_count"] = activity.pending_submission_count + 1
    elif was_pending and not is_pending:
        counters["pending_submission_count"] = max(activity.pending_submission_count - 1, 0)
    if counters:
        store.update(ACTIVITIES, activity_id, counters)

    logger.info(
        "Student %s submitted activity %s (%s)", student["id"], activity_id, decision.status
    )
    return SubmitResult(stored, activity, replaced_corrected)
