from pydantic import BaseModel
from typing import Dict, List, Optional

class ActivityGradeEntry(BaseModel):
    id: str
    title: str
    grade: float
    max_points: float
    materia: str

class SubjectReport(BaseModel):
    activities: List[ActivityGradeEntry] = []
    total_points: float = 0

class GradeReportUnidade(BaseModel):
    subjects: Dict[str, SubjectReport] = {}

class StudentGradeSummary(BaseModel):
    id: Optional[str] = None
    class_id: str
    student_id: str
    class_name: Optional[str] = None
    unidades: Dict[str, GradeReportUnidade] = {}
    updated_at: Optional[str] = None

class RebuildResponse(BaseModel):
    class_id: str
    rebuilt: List[str]
