import logging
from fastapi import APIRouter, Depends, HTTPException
from app.db.store import DocumentStore, get_store
from app.schemas.activities import Activity, ActivityCreate, ActivityDraftRequest, ActivityItemsResponse
from app.core.dependencies import (
    require_admin_or_teacher,
    check_class_access,
    get_ai_grader,
    http_error_for,
)
from app.core.exceptions import GradingError
from app.core.security import get_current_user
from app.grading.items import normalize_activity
from app.grading.summary import ACTIVITIES, CLASSES
from datetime import datetime
import math
import uuid

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Activities"])


def _student_view(activity: Activity) -> dict:
    """Activity as a student may see it: no correct answers."""
    data = activity.model_dump()
    for item in data["items"]:
        item.pop("correct_option_id", None)
    return data


def _check_class_read_access(user: dict, class_doc: dict):
    if user["role"] == "student":
        if user["id"] not in (class_doc.get("student_ids") or []):
            raise HTTPException(status_code=403, detail="Not enrolled in this class")
    else:
        check_class_access(user, class_doc)


@router.post("/", response_model=Activity)
def create_activity(
    activity: ActivityCreate,
    user: dict = Depends(require_admin_or_teacher),
    store: DocumentStore = Depends(get_store)
):
    """
    Create a new activity. Admin or teacher of the class.
    """
    try:
        class_doc = store.get(CLASSES, activity.class_id)
        if not class_doc:
            raise HTTPException(status_code=404, detail="Class not found")

        check_class_access(user, class_doc)

        points = sum(item.points for item in activity.items)
        if activity.points is not None and not math.isclose(activity.points, points):
            raise HTTPException(
                status_code=400,
                detail=f"Activity points must equal the sum of item points ({points})"
            )

        activity_id = str(uuid.uuid4())
        activity_data = {
            "class_id": activity.class_id,
            "title": activity.title,
            "description": activity.description,
            "materia": activity.materia,
            "unidade": activity.unidade,
            "points": points,
            "items": [item.model_dump() for item in activity.items],
            "grading_config": activity.grading_config.model_dump(),
            "status": "Rascunho" if activity.is_draft else "Pendente",
            "submission_count": 0,
            "pending_submission_count": 0,
            "created_by": user["id"],
            "created_at": datetime.utcnow().isoformat(),
        }

        stored = store.set(ACTIVITIES, activity_id, activity_data)
        return normalize_activity(stored)
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Create activity error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/class/{class_id}")
def get_class_activities(
    class_id: str,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """
    Get activities for a class. Students must be enrolled and only see published activities.
    """
    try:
        class_doc = store.get(CLASSES, class_id)
        if not class_doc:
            raise HTTPException(status_code=404, detail="Class not found")

        _check_class_read_access(user, class_doc)

        activities = [normalize_activity(doc) for doc in store.query(ACTIVITIES, class_id=class_id)]
        activities.sort(key=lambda a: (a.created_at or "", a.id))

        if user["role"] == "student":
            return [_student_view(a) for a in activities if a.status != "Rascunho"]
        return [a.model_dump() for a in activities]
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Get class activities error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/draft-items", response_model=ActivityItemsResponse)
def draft_activity_items(
    request: ActivityDraftRequest,
    user: dict = Depends(require_admin_or_teacher),
    ai_grader=Depends(get_ai_grader)
):
    """
    Draft free-text questions on a topic with the AI assistant. Nothing is saved.
    """
    try:
        items = ai_grader.draft_text_items(
            request.topic, request.materia, request.count, request.points_per_item
        )
        return ActivityItemsResponse(items=items)
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Draft activity items error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{activity_id}")
def get_activity(
    activity_id: str,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """
    Get specific activity by ID. Correct answers are hidden from students.
    """
    try:
        doc = store.get(ACTIVITIES, activity_id)
        if not doc:
            raise HTTPException(status_code=404, detail="Activity not found")

        activity = normalize_activity(doc)
        class_doc = store.get(CLASSES, activity.class_id) or {}
        _check_class_read_access(user, class_doc)

        if user["role"] == "student":
            return _student_view(activity)
        return activity.model_dump()
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Get activity error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")
