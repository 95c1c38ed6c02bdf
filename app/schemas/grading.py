from pydantic import BaseModel
from typing import Any, Dict, List, Literal, Optional

class OpenSessionRequest(BaseModel):
    activity_id: str

class SelectSubmissionRequest(BaseModel):
    student_id: str

class ScoreUpdate(BaseModel):
    value: float

class OverrideUpdate(BaseModel):
    enabled: bool

class FeedbackUpdate(BaseModel):
    text: str

class SaveRequest(BaseModel):
    action: Literal["stay", "next", "exit"] = "stay"

class Notice(BaseModel):
    level: str
    message: str

class RosterEntry(BaseModel):
    student_id: str
    student_name: str = ""
    status: str
    grade: Optional[float] = None
    submission_date: Optional[str] = None

class SessionResponse(BaseModel):
    token: str
    session: Dict[str, Any]
    notices: List[Notice] = []
    result: Optional[Dict[str, Any]] = None
