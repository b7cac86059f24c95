from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.database import init_db
from app.routers import (
    system, auth, assessment, lessons, sessions, rankings, certifications,
    admin, admin_console, admin_lessons, speech,
)


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="API backend TypeMind (leçons de frappe, scores, classements, certifications)",
    )

    # Middleware CORS
    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],  # fallback si mal configuré
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(system.router)
    app.include_router(auth.router)
    app.include_router(assessment.router)
    app.include_router(lessons.router)
    app.include_router(sessions.router)
    app.include_router(rankings.router)
    app.include_router(certifications.router)
    app.include_router(admin_lessons.router)
    app.include_router(admin_console.router)
    app.include_router(speech.router)
    app.include_router(admin.router)

    @app.on_event("startup")
    def on_startup():
        init_db()

    # Redirect root → docs
    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    return app


app = create_app()
