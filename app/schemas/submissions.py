from pydantic import BaseModel
from typing import Dict, Optional, Literal

STATUS_PENDING = "Aguardando correção"
STATUS_CORRECTED = "Corrigido"

SubmissionStatus = Literal["Aguardando correção", "Corrigido"]

class SubmissionCreate(BaseModel):
    activity_id: str
    content: str                    # JSON-encoded answer map: item id -> option id or text

class ActivitySubmission(BaseModel):
    id: Optional[str] = None
    activity_id: str
    student_id: str
    student_name: str = ""
    submission_date: Optional[str] = None
    content: str = ""
    status: SubmissionStatus = STATUS_PENDING
    grade: Optional[float] = None
    feedback: Optional[str] = None
    scores: Optional[Dict[str, float]] = None
    graded_at: Optional[str] = None
    graded_by: Optional[str] = None

class SubmissionResponse(BaseModel):
    submission: ActivitySubmission
    auto_corrected: bool
