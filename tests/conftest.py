from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.core.security import create_access_token, hash_password
from app.db.database import Base, get_db
from app.db import models  # noqa: F401  (enregistre les tables)
from app.db.models import User, Lesson, Progress
from app.main import create_app

TEST_API_KEY = "test-api-key"
TEST_PASSWORD = "secret123"


@pytest.fixture(scope="session")
def password_hash():
    # bcrypt est lent : un seul hash pour toute la session
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def db_session():
    """
    Base SQLite en mémoire, isolée par test.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def test_client(monkeypatch, db_session):
    """
    Crée un TestClient branché sur la base de test,
    et force quelques variables d'env pour les tests.
    """
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("APP_NAME", "TypeMind API (tests)")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost")
    monkeypatch.setenv("API_KEY", TEST_API_KEY)
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    # IMPORTANT: vider le cache des settings pour prendre en compte les env
    get_settings.cache_clear()

    app = create_app()

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    # pas de "with" : le startup (init_db sur la vraie base) ne tourne pas
    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
    get_settings.cache_clear()


@pytest.fixture
def app(test_client):
    return test_client.app


@pytest.fixture
def make_user(db_session, password_hash):
    def _make(
        email: str,
        *,
        role: str = "student",
        status: str = "approved",
        level: str | None = "beginner",
        full_name: str = "Test User",
        created_at: datetime | None = None,
    ) -> User:
        u = User(
            email=email,
            full_name=full_name,
            password_hash=password_hash,
            role=role,
            status=status,
            level=level,
        )
        if created_at is not None:
            u.created_at = created_at
        db_session.add(u)
        db_session.commit()
        db_session.refresh(u)
        return u

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com", role="admin", level=None, full_name="Admin")


@pytest.fixture
def student(make_user):
    return make_user("student@example.com", full_name="Alice Martin")


@pytest.fixture
def make_lesson(db_session):
    def _make(content: str = "the cat sat", *, level: str = "beginner", title: str = "Leçon test", archived: bool = False) -> Lesson:
        l = Lesson(title=title, content=content, level=level, module_type="text", archived=archived)
        db_session.add(l)
        db_session.commit()
        db_session.refresh(l)
        return l

    return _make


@pytest.fixture
def make_progress(db_session):
    """
    Session terminée insérée directement (sans passer par l'API).
    """
    def _make(user: User, lesson: Lesson, *, wpm: int, accuracy: int, seconds: int = 60, finished_at: datetime | None = None) -> Progress:
        finished = finished_at or datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
        p = Progress(
            student_id=user.id,
            lesson_id=lesson.id,
            completed=True,
            started_at=finished - timedelta(seconds=seconds),
            finished_at=finished,
            raw_input=lesson.content,
            wpm=wpm,
            accuracy=accuracy,
            error_count=0,
            time_spent_seconds=seconds,
        )
        db_session.add(p)
        db_session.commit()
        db_session.refresh(p)
        return p

    return _make


@pytest.fixture
def auth_headers(test_client):
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}

    return _headers
