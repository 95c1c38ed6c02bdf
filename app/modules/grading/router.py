import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from app.db.store import DocumentStore, get_store
from app.schemas.grading import (
    FeedbackUpdate,
    OpenSessionRequest,
    OverrideUpdate,
    RosterEntry,
    SaveRequest,
    ScoreUpdate,
    SelectSubmissionRequest,
    SessionResponse,
)
from app.core import session_cache
from app.core.dependencies import require_admin_or_teacher, check_class_access, get_ai_grader, http_error_for
from app.core.exceptions import GradingError
from app.grading.session import GradingSession, SessionState
from app.grading.summary import CLASSES

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Grading"])


def _respond(token: str, session: GradingSession, result: Optional[dict] = None) -> SessionResponse:
    return SessionResponse(
        token=token,
        session=session.snapshot(),
        notices=session.drain_notices(),
        result=result,
    )


def _load_session(token: str, user: dict) -> GradingSession:
    session = session_cache.get_session(token, user["id"])
    if session is None:
        raise HTTPException(status_code=404, detail="Grading session not found or expired")
    return session


@router.post("/sessions", response_model=SessionResponse)
def open_session(
    request: OpenSessionRequest,
    user: dict = Depends(require_admin_or_teacher),
    store: DocumentStore = Depends(get_store),
    ai_grader=Depends(get_ai_grader)
):
    """
    Enter the grading screen for an activity. Admin or teacher of the class.
    """
    try:
        session = GradingSession.open(store, request.activity_id, user, ai_grader)

        class_doc = store.get(CLASSES, session.activity.class_id) or {}
        check_class_access(user, class_doc)

        session_cache.clear_expired()
        token = session_cache.create_session(session, user["id"])
        logger.info("Grading session opened for activity %s by %s", request.activity_id, user["id"])
        return _respond(token, session)
    except HTTPException:
        raise
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Open grading session error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/sessions/{token}", response_model=SessionResponse)
def get_session_state(token: str, user: dict = Depends(require_admin_or_teacher)):
    """Current state of a grading session."""
    return _respond(token, _load_session(token, user))


@router.get("/sessions/{token}/roster", response_model=list[RosterEntry])
def get_roster(
    token: str,
    status: Optional[str] = Query(None, description="all, pending or graded"),
    search: Optional[str] = Query(None, description="Student name substring"),
    user: dict = Depends(require_admin_or_teacher)
):
    """
    Filter the roster of submissions. Works on the loaded roster; nothing is refetched.
    """
    session = _load_session(token, user)
    try:
        session.set_filter(status=status, search=search)
    except GradingError as e:
        raise http_error_for(e)
    return [RosterEntry(**s) for s in session.roster()]


@router.post("/sessions/{token}/select", response_model=SessionResponse)
def select_submission(
    token: str,
    request: SelectSubmissionRequest,
    user: dict = Depends(require_admin_or_teacher)
):
    session = _load_session(token, user)
    try:
        session.select(request.student_id)
    except GradingError as e:
        raise http_error_for(e)
    return _respond(token, session)


@router.put("/sessions/{token}/scores/{item_id}", response_model=SessionResponse)
def update_score(
    token: str,
    item_id: str,
    update: ScoreUpdate,
    user: dict = Depends(require_admin_or_teacher)
):
    session = _load_session(token, user)
    try:
        session.set_score(item_id, update.value)
    except GradingError as e:
        raise http_error_for(e)
    return _respond(token, session)


@router.put("/sessions/{token}/overrides/{item_id}", response_model=SessionResponse)
def update_override(
    token: str,
    item_id: str,
    update: OverrideUpdate,
    user: dict = Depends(require_admin_or_teacher)
):
    session = _load_session(token, user)
    try:
        session.set_override(item_id, update.enabled)
    except GradingError as e:
        raise http_error_for(e)
    return _respond(token, session)


@router.put("/sessions/{token}/feedback", response_model=SessionResponse)
def update_feedback(
    token: str,
    update: FeedbackUpdate,
    user: dict = Depends(require_admin_or_teacher)
):
    session = _load_session(token, user)
    try:
        session.set_feedback(update.text)
    except GradingError as e:
        raise http_error_for(e)
    return _respond(token, session)


@router.post("/sessions/{token}/ai/{item_id}", response_model=SessionResponse)
def grade_item_with_ai(token: str, item_id: str, user: dict = Depends(require_admin_or_teacher)):
    """
    Ask the AI assistant to score one text item. A failed call only produces an error notice.
    """
    session = _load_session(token, user)
    try:
        session.grade_item_with_ai(item_id)
    except GradingError as e:
        raise http_error_for(e)
    return _respond(token, session)


@router.post("/sessions/{token}/ai", response_model=SessionResponse)
def grade_all_with_ai(token: str, user: dict = Depends(require_admin_or_teacher)):
    """
    Score every answered text item with the AI assistant, one after another.
    """
    session = _load_session(token, user)
    try:
        graded = session.grade_all_with_ai()
    except GradingError as e:
        raise http_error_for(e)
    return _respond(token, session, {"graded_item_ids": graded})


@router.post("/sessions/{token}/save", response_model=SessionResponse)
def save_grade(
    token: str,
    request: SaveRequest,
    background_tasks: BackgroundTasks,
    user: dict = Depends(require_admin_or_teacher)
):
    """
    Save the current student's grade, then stay, move to the next student or leave.

    The grade summary and the student's notification are updated after the response.
    """
    session = _load_session(token, user)
    try:
        result = session.save(request.action, schedule=background_tasks.add_task)
    except GradingError as e:
        raise http_error_for(e)
    except Exception as e:
        logger.exception("Save grade error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")

    response = _respond(token, session, result)
    if session.state == SessionState.EXITED:
        session_cache.invalidate_session(token)
    return response


@router.delete("/sessions/{token}")
def close_session(token: str, user: dict = Depends(require_admin_or_teacher)):
    """Leave the grading screen and discard the session."""
    session = _load_session(token, user)
    session.exit()
    session_cache.invalidate_session(token)
    return {"message": "Grading session closed"}
