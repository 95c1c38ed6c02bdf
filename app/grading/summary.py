"""
Per-student grade summary.

The summary is a disposable read cache keyed ``{class_id}_{student_id}``. It is
always rebuilt in full from the class's activities and the student's corrected
submissions, never patched, so it cannot drift from the submissions it mirrors.
"""
import logging
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from app.grading.items import normalize_activity
from app.schemas.activities import Activity
from app.schemas.submissions import STATUS_CORRECTED

logger = logging.getLogger(__name__)

CLASSES = "classes"
ACTIVITIES = "activities"
SUBMISSIONS = "submissions"
STUDENT_GRADES = "student_grades"


class GradeOverride(NamedTuple):
    """A grade just written for ``activity_id`` that may not be visible yet."""
    activity_id: str
    grade: float


def summary_id(class_id: str, student_id: str) -> str:
    return f"{class_id}_{student_id}"


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _sort_key(activity: Activity):
    return (activity.created_at or "", activity.id)


def build_grade_summary(
    class_doc: dict,
    activities: List[Activity],
    submissions: Dict[str, dict],
    student_id: str,
    override: Optional[GradeOverride] = None,
) -> dict:
    """
    Group a student's corrected grades by unidade and materia.

    ``submissions`` maps activity id to that student's submission document.
    The result holds no timestamp, so equal inputs give equal output.
    """
    unidades: Dict[str, dict] = {}

    for activity in sorted(activities, key=_sort_key):
        submission = submissions.get(activity.id)

        if override is not None and activity.id == override.activity_id:
            submission = dict(submission or {})
            submission["status"] = STATUS_CORRECTED
            submission["grade"] = override.grade

        if not submission:
            continue
        if submission.get("status") != STATUS_CORRECTED or not _is_number(submission.get("grade")):
            continue

        subjects = unidades.setdefault(activity.unidade, {"subjects": {}})["subjects"]
        entry = subjects.setdefault(activity.materia, {"activities": [], "total_points": 0})
        entry["activities"].append({
            "id": activity.id,
            "title": activity.title,
            "grade": submission["grade"],
            "max_points": activity.points,
            "materia": activity.materia,
        })
        entry["total_points"] += submission["grade"]

    return {
        "class_id": class_doc["id"],
        "student_id": student_id,
        "class_name": class_doc.get("name"),
        "unidades": unidades,
    }


class GradeSummaryBuilder:
    def __init__(self, store):
        self.store = store

    def _load_activities(self, class_id: str) -> List[Activity]:
        return [normalize_activity(doc) for doc in self.store.query(ACTIVITIES, class_id=class_id)]

    def _load_submissions(self, activity_ids, student_id: str) -> Dict[str, dict]:
        return {
            doc["activity_id"]: doc
            for doc in self.store.query(SUBMISSIONS, student_id=student_id)
            if doc.get("activity_id") in activity_ids
        }

    def rebuild(self, class_id: str, student_id: str, override: Optional[GradeOverride] = None) -> Optional[dict]:
        """
        Rebuild and merge-upsert the summary for one student in one class.

        Best effort: any failure is logged and swallowed, and ``None`` returned.
        """
        try:
            class_doc = self.store.get(CLASSES, class_id)
            if not class_doc:
                logger.warning("Skipping grade summary: class %s not found", class_id)
                return None

            activities = self._load_activities(class_id)
            submissions = self._load_submissions({a.id for a in activities}, student_id)
            summary = build_grade_summary(class_doc, activities, submissions, student_id, override)
            summary["updated_at"] = datetime.utcnow().isoformat()

            return self.store.set(STUDENT_GRADES, summary_id(class_id, student_id), summary, merge=True)
        except Exception:
            logger.exception("Failed to update grade summary for student %s in class %s", student_id, class_id)
            return None

    def rebuild_class(self, class_id: str) -> List[str]:
        """Rebuild the summary of every student with a submission in the class."""
        activity_ids = [a.id for a in self._load_activities(class_id)]
        student_ids = set()
        for activity_id in activity_ids:
            for doc in self.store.query(SUBMISSIONS, activity_id=activity_id):
                student_ids.add(doc["student_id"])

        rebuilt = []
        for student_id in sorted(student_ids):
            if self.rebuild(class_id, student_id) is not None:
                rebuilt.append(student_id)
        return rebuilt
