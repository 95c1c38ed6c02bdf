import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from app.db.store import DocumentStore, get_store
from app.schemas.submissions import ActivitySubmission, SubmissionCreate, SubmissionResponse, STATUS_CORRECTED
from app.core.dependencies import require_admin_or_teacher, require_student, check_class_access, http_error_for
from app.core.exceptions import GradingError
from app.grading.notifications import emit_notification
from app.grading.submission_flow import submit_activity, submission_doc_id
from app.grading.summary import ACTIVITIES, CLASSES, SUBMISSIONS, GradeSummaryBuilder

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Submissions"])

@router.post("/", response_model=SubmissionResponse)
def submit(
    submission: SubmissionCreate,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_student),
    store: DocumentStore = Depends(get_store)
):
    """
    Submit answers for an activity. Only enrolled students; a new submission replaces the previous one.
    """
    try:
        activity_doc = store.get(ACTIVITIES, submission.activity_id)
        if not activity_doc:
            raise HTTPException(status_code=404, detail="Activity not found")
        if activity_doc.get("status") == "Rascunho":
            raise HTTPException(status_code=400, detail="Activity is not published")

        class_doc = store.get(CLASSES, activity_doc.get("class_id")) or {}
        if user["id"] not in (class_doc.get("student_ids") or []):
            raise HTTPException(status_code=403, detail="Not enrolled in this class")

        stored, activity, replaced_corrected = submit_activity(
            store, submission.activity_id, user, submission.content
        )
        auto_corrected = stored["status"] == STATUS_CORRECTED

        if auto_corrected:
            background_tasks.add_task(
                emit_notification,
                store,
                user_id=user["id"],
                title="Atividade Corrigida Automaticamente",
                text=f'Sua atividade "{activity.title}" foi corrigida. Nota: {stored["grade"]}',
                actor_id="system",
                actor_name="Sistema",
                class_id=activity.class_id,
                activity_id=activity.id,
            )

        # Overwriting a corrected submission removes its grade from the summary
        if auto_corrected or replaced_corrected:
            background_tasks.add_task(GradeSummaryBuilder(store).rebuild, activity.class_id, user["id"])

        return SubmissionResponse(submission=ActivitySubmission(**stored), auto_corrected=auto_corrected)
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Submit activity error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/activity/{activity_id}", response_model=list[ActivitySubmission])
def get_activity_submissions(
    activity_id: str,
    user: dict = Depends(require_admin_or_teacher),
    store: DocumentStore = Depends(get_store)
):
    """
    Get all submissions for an activity, oldest first. Admin or teacher of the class.
    """
    try:
        activity_doc = store.get(ACTIVITIES, activity_id)
        if not activity_doc:
            raise HTTPException(status_code=404, detail="Activity not found")

        class_doc = store.get(CLASSES, activity_doc.get("class_id")) or {}
        check_class_access(user, class_doc)

        submissions = store.query(SUBMISSIONS, activity_id=activity_id)
        submissions.sort(key=lambda s: s.get("submission_date") or "")
        return [ActivitySubmission(**s) for s in submissions]
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Get activity submissions error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/my/{activity_id}", response_model=ActivitySubmission)
def get_my_submission(
    activity_id: str,
    user: dict = Depends(require_student),
    store: DocumentStore = Depends(get_store)
):
    """
    Get the current student's submission for an activity.
    """
    try:
        submission = store.get(SUBMISSIONS, submission_doc_id(activity_id, user["id"]))
        if not submission:
            raise HTTPException(status_code=404, detail="Submission not found")
        return ActivitySubmission(**submission)
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Get my submission error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")
