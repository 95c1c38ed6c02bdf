import logging
from datetime import datetime
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core import session_cache
from app.db.store import DocumentStore, get_store
from app.modules.activities.router import router as activities_router
from app.modules.submissions.router import router as submissions_router
from app.modules.grading.router import router as grading_router
from app.modules.grades.router import router as grades_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Classroom Grading Backend",
    description="Activities, submissions, grading sessions and grade summaries",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Liveness
@app.get("/")
def root():
    return {"message": "Classroom grading backend is running"}

@app.get("/health")
def health_check(store: DocumentStore = Depends(get_store)):
    """Store round-trip plus the number of open grading sessions."""
    try:
        store.get("profiles", "healthcheck")
        return {
            "status": "healthy",
            "database": "connected",
            "grading_sessions": session_cache.active_count(),
            "timestamp": datetime.utcnow().isoformat()
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": f"error: {str(e)}",
            "timestamp": datetime.utcnow().isoformat()
        }

app.include_router(activities_router, prefix="/activities", tags=["Activities"])
app.include_router(submissions_router, prefix="/submissions", tags=["Submissions"])
app.include_router(grading_router, prefix="/grading", tags=["Grading"])
app.include_router(grades_router, prefix="/grades", tags=["Grades"])
