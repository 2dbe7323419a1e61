import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.assignment_cycles.router import router as assignment_cycles_router
from app.api.v1.assignments.router import router as assignments_router
from app.api.v1.audit.router import router as audit_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.directory.router import router as directory_router
from app.api.v1.feedback.router import router as feedback_router
from app.api.v1.goals.router import router as goals_router
from app.api.v1.meeting_logs.router import router as meeting_logs_router
from app.api.v1.notifications.router import router as notifications_router
from app.api.v1.sessions.router import router as sessions_router
from app.api.v1.system_settings.router import router as system_settings_router
from app.core.config import settings


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = FastAPI(title="Mentor Management Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(system_settings_router)
    app.include_router(directory_router)
    app.include_router(assignment_cycles_router)
    app.include_router(assignments_router)
    app.include_router(sessions_router)
    app.include_router(meeting_logs_router)
    app.include_router(feedback_router)
    app.include_router(goals_router)
    app.include_router(notifications_router)
    app.include_router(audit_router)

    return app


app = create_app()
