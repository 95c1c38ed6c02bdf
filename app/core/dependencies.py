from fastapi import Depends, HTTPException, status
from app.core.exceptions import (
    AIAssistError,
    GradingError,
    NotFoundError,
    SessionBusyError,
    StoreError,
    ValidationFailure,
)
from app.core.security import get_current_user
from app.grading.ai_assist import GeminiGrader

def require_role(required_role: str):
    """
    Dependency to check if user has the required role.
    """
    def role_checker(user: dict = Depends(get_current_user)):
        if user.get("role") != required_role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {required_role}"
            )
        return user
    return role_checker

require_teacher = require_role("teacher")
require_student = require_role("student")

def require_admin_or_teacher(user: dict = Depends(get_current_user)):
    """Require admin or teacher role"""
    if user.get("role") not in ["admin", "teacher"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Required role: admin or teacher"
        )
    return user

def check_class_access(user: dict, class_doc: dict):
    """Teachers may only act on classes they teach; admins on any class."""
    if user["role"] == "teacher" and class_doc.get("teacher_id") != user["id"]:
        raise HTTPException(status_code=403, detail="Access denied")

def get_ai_grader():
    """AI-assist grader; overridden in tests."""
    return GeminiGrader()

def http_error_for(error: GradingError) -> HTTPException:
    """Map a domain error to the HTTP error the routers return."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, ValidationFailure):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, SessionBusyError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, StoreError):
        return HTTPException(status_code=503, detail=str(error))
    if isinstance(error, AIAssistError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail="Internal server error")
