"""
Test data builders: profiles, a class, activities and submissions in the
document shapes the store holds, plus a scripted stand-in for the AI grader.
"""
from app.core.exceptions import AIAssistError
from app.grading.ai_assist import GradingResult
from app.schemas.activities import TextItem

TEACHER = {"id": "teacher-1", "role": "teacher", "full_name": "Ana Pereira", "email": "ana@escola.test"}
OTHER_TEACHER = {"id": "teacher-2", "role": "teacher", "full_name": "Rui Costa", "email": "rui@escola.test"}
ADMIN = {"id": "admin-1", "role": "admin", "full_name": "Secretaria", "email": "admin@escola.test"}
STUDENTS = [
    {"id": "student-1", "role": "student", "full_name": "Bruno Lima", "email": "bruno@escola.test"},
    {"id": "student-2", "role": "student", "full_name": "Carla Souza", "email": "carla@escola.test"},
    {"id": "student-3", "role": "student", "full_name": "Diego Alves", "email": "diego@escola.test"},
]
CLASS_ID = "class-1"


class ScriptedGrader:
    """Answers from a question -> (grade, feedback) table; listed questions fail."""

    def __init__(self, results=None, failures=()):
        self.results = results or {}
        self.failures = set(failures)
        self.calls = []
        self.materias = []

    def grade(self, question, answer, max_points, materia=None):
        self.calls.append(question)
        self.materias.append(materia)
        if question in self.failures:
            raise AIAssistError("Falha ao conectar com o serviço de Inteligência Artificial.")
        grade, feedback = self.results.get(question, (max_points, "Resposta completa."))
        return GradingResult(grade=grade, feedback=feedback)

    def draft_text_items(self, topic, materia, count=3, points_per_item=1):
        return [
            TextItem(id=f"q{i}", question=f"{topic} ({materia}) #{i}", points=points_per_item)
            for i in range(1, count + 1)
        ]


def mc_item(item_id, points, correct, question=None):
    return {
        "id": item_id,
        "type": "multiple_choice",
        "question": question or f"Questão {item_id}",
        "points": points,
        "options": [{"id": o, "text": o.upper()} for o in ("a", "b", "c")],
        "correct_option_id": correct,
    }


def text_item(item_id, points, question=None):
    return {"id": item_id, "type": "text", "question": question or f"Questão {item_id}", "points": points}


def add_activity(store, activity_id, items, points=None, **extra):
    doc = {
        "class_id": CLASS_ID,
        "title": f"Atividade {activity_id}",
        "materia": "História",
        "unidade": "1ª Unidade",
        "points": points if points is not None else sum(i["points"] for i in items),
        "items": items,
        "grading_config": {"objective_questions": "automatic"},
        "status": "Pendente",
        "submission_count": 0,
        "pending_submission_count": 0,
        "created_by": TEACHER["id"],
        "created_at": f"2026-03-01T10:00:{len(store.query('activities')):02d}",
    }
    doc.update(extra)
    return store.set("activities", activity_id, doc)


def add_submission(store, activity_id, student, content, date, **extra):
    doc = {
        "activity_id": activity_id,
        "class_id": CLASS_ID,
        "student_id": student["id"],
        "student_name": student["full_name"],
        "submission_date": date,
        "content": content,
        "status": "Aguardando correção",
    }
    doc.update(extra)
    return store.set("submissions", f"{activity_id}_{student['id']}", doc)
