import logging
from fastapi import APIRouter, Depends, HTTPException
from app.db.store import DocumentStore, get_store
from app.schemas.grades import StudentGradeSummary, RebuildResponse
from app.core.dependencies import require_admin_or_teacher, check_class_access, http_error_for
from app.core.exceptions import GradingError
from app.core.security import get_current_user
from app.grading.summary import CLASSES, STUDENT_GRADES, GradeSummaryBuilder, summary_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Grades"])

@router.get("/summary/{class_id}/{student_id}", response_model=StudentGradeSummary)
def get_student_grade_summary(
    class_id: str,
    student_id: str,
    user: dict = Depends(get_current_user),
    store: DocumentStore = Depends(get_store)
):
    """
    Get a student's grades for a class, grouped by unidade and materia.
    Students can view their own summary, teachers the summaries of their classes.
    """
    try:
        if user["role"] == "student":
            if student_id != user["id"]:
                raise HTTPException(status_code=403, detail="Access denied")
        else:
            class_doc = store.get(CLASSES, class_id)
            if not class_doc:
                raise HTTPException(status_code=404, detail="Class not found")
            check_class_access(user, class_doc)

        summary = store.get(STUDENT_GRADES, summary_id(class_id, student_id))
        if not summary:
            raise HTTPException(status_code=404, detail="Grade summary not found")
        return StudentGradeSummary(**summary)
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Get grade summary error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")

@router.post("/summary/{class_id}/rebuild", response_model=RebuildResponse)
def rebuild_class_summaries(
    class_id: str,
    user: dict = Depends(require_admin_or_teacher),
    store: DocumentStore = Depends(get_store)
):
    """
    Rebuild the grade summary of every student with a submission in the class.
    """
    try:
        class_doc = store.get(CLASSES, class_id)
        if not class_doc:
            raise HTTPException(status_code=404, detail="Class not found")
        check_class_access(user, class_doc)

        rebuilt = GradeSummaryBuilder(store).rebuild_class(class_id)
        logger.info("Rebuilt %d grade summaries for class %s", len(rebuilt), class_id)
        return RebuildResponse(class_id=class_id, rebuilt=rebuilt)
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Rebuild grade summaries error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")
