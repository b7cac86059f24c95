import random

from sqlalchemy import select

from app.core.deps import get_content_service
from app.data.healthcare_content import SAMPLE_TEXTS
from app.db.models import User
from app.services.content_service import ContentService

TEST_API_KEY = "test-api-key"


# =========================================================
# Élèves
# =========================================================
def test_list_students_filters_by_status(test_client, admin_user, make_user, auth_headers):
    make_user("p1@example.com", status="pending", level=None)
    make_user("p2@example.com", status="pending", level=None, full_name="Zoé Pending")
    make_user("ok@example.com")

    r = test_client.get("/admin/students?status=pending", headers=auth_headers(admin_user))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["total"] == 2
    assert {u["email"] for u in data["items"]} == {"p1@example.com", "p2@example.com"}

    r = test_client.get("/admin/students?q=Zoé", headers=auth_headers(admin_user))
    assert [u["email"] for u in r.json()["items"]] == ["p2@example.com"]


def test_approve_and_deny_student(test_client, db_session, admin_user, make_user, auth_headers):
    u = make_user("p@example.com", status="pending", level=None)
    h = auth_headers(admin_user)

    r = test_client.post(f"/admin/students/{u.id}/status", json={"status": "approved"}, headers=h)
    assert r.status_code == 200, r.text
    db_session.refresh(u)
    assert u.status == "approved"

    r = test_client.post(f"/admin/students/{u.id}/status", json={"status": "denied"}, headers=h)
    assert r.status_code == 200
    db_session.refresh(u)
    assert u.status == "denied"

    assert test_client.post(f"/admin/students/{u.id}/status", json={"status": "pending"}, headers=h).status_code == 422
    assert test_client.post("/admin/students/9999/status", json={"status": "approved"}, headers=h).status_code == 404
    assert test_client.post(f"/admin/students/{admin_user.id}/status", json={"status": "denied"}, headers=h).status_code == 400


def test_denied_student_cannot_practice(test_client, make_user, auth_headers):
    u = make_user("d@example.com", status="denied")
    assert test_client.get("/lessons", headers=auth_headers(u)).status_code == 403


# =========================================================
# Leçons
# =========================================================
def test_lesson_crud(test_client, admin_user, auth_headers):
    h = auth_headers(admin_user)
    r = test_client.post(
        "/admin/lessons",
        json={"title": "Signes vitaux", "content": "Vital signs include pulse.", "level": "beginner"},
        headers=h,
    )
    assert r.status_code == 201, r.text
    lesson = r.json()
    assert lesson["archived"] is False
    assert lesson["module_type"] == "text"

    r = test_client.patch(f"/admin/lessons/{lesson['id']}", json={"content": "Pulse and blood pressure."}, headers=h)
    assert r.status_code == 200
    assert r.json()["content"] == "Pulse and blood pressure."

    assert len(test_client.get("/admin/lessons", headers=h).json()) == 1

    r = test_client.delete(f"/admin/lessons/{lesson['id']}", headers=h)
    assert r.json() == {"ok": True, "id": lesson["id"], "archived": False}
    assert test_client.get(f"/admin/lessons/{lesson['id']}", headers=h).status_code == 404


def test_referenced_lesson_is_frozen_and_archived(test_client, db_session, admin_user, student, make_lesson, make_progress, auth_headers):
    lesson = make_lesson("the cat sat")
    make_progress(student, lesson, wpm=20, accuracy=100)
    h = auth_headers(admin_user)

    assert test_client.patch(f"/admin/lessons/{lesson.id}", json={"content": "the dog ran"}, headers=h).status_code == 409
    assert test_client.patch(f"/admin/lessons/{lesson.id}", json={"level": "advanced"}, headers=h).status_code == 409

    r = test_client.patch(f"/admin/lessons/{lesson.id}", json={"title": "Nouveau titre"}, headers=h)
    assert r.status_code == 200
    assert r.json()["title"] == "Nouveau titre"

    r = test_client.delete(f"/admin/lessons/{lesson.id}", headers=h)
    assert r.json()["archived"] is True
    db_session.refresh(lesson)
    assert lesson.archived is True

    # l'historique reste compté
    me = test_client.get("/rankings/me", headers=auth_headers(student)).json()
    assert me["total_lessons_completed"] == 1
    # mais la leçon n'est plus proposée
    assert test_client.get("/lessons", headers=auth_headers(student)).json() == []
    assert test_client.get("/admin/lessons", headers=h).json() == []
    assert len(test_client.get("/admin/lessons?include_archived=true", headers=h).json()) == 1


def test_generate_lesson_content_falls_back_to_samples(test_client, app, admin_user, auth_headers):
    app.dependency_overrides[get_content_service] = lambda: ContentService(client=None, rng=random.Random(0))
    r = test_client.post("/admin/lessons/generate", json={"level": "beginner"}, headers=auth_headers(admin_user))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["source"] == "sample"
    assert data["content"] in SAMPLE_TEXTS["beginner"]


# =========================================================
# Analytics
# =========================================================
def test_analytics_overview(test_client, admin_user, student, make_user, make_lesson, auth_headers):
    make_user("p@example.com", status="pending", level=None)
    lesson = make_lesson("the cat sat")
    test_client.post(
        "/sessions",
        json={"lesson_id": lesson.id, "raw_input": "the cat sat",
              "started_at": "2026-01-01T10:00:00Z", "finished_at": "2026-01-01T10:00:30Z"},
        headers=auth_headers(student),
    )

    r = test_client.get("/admin/analytics/overview", headers=auth_headers(admin_user))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["students_by_status"] == {"approved": 1, "pending": 1}
    assert data["students_by_level"] == {"beginner": 1, "unassigned": 1}
    assert data["lessons_active"] == 1
    assert data["lesson_sessions"] == 1
    assert data["average_wpm"] == 6.0
    assert data["average_accuracy"] == 100.0
    assert data["total_time_spent_seconds"] == 30


def test_user_analytics(test_client, admin_user, student, make_lesson, make_progress, auth_headers):
    lesson = make_lesson("the cat sat", title="Chat")
    make_progress(student, lesson, wpm=25, accuracy=100)

    r = test_client.get(f"/admin/users/{student.id}/analytics", headers=auth_headers(admin_user))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["user"]["email"] == student.email
    assert data["ranking"]["total_points"] == 40
    assert data["recent_progress"][0]["lesson_title"] == "Chat"
    assert data["assessments"] == []

    assert test_client.get("/admin/users/9999/analytics", headers=auth_headers(admin_user)).status_code == 404


# =========================================================
# Ops (x-api-key)
# =========================================================
def test_make_admin_requires_api_key(test_client, db_session, student):
    r = test_client.post(f"/ops/make-admin?email={student.email}")
    assert r.status_code == 401
    r = test_client.post(f"/ops/make-admin?email={student.email}", headers={"x-api-key": "wrong"})
    assert r.status_code == 401

    r = test_client.post(f"/ops/make-admin?email={student.email}", headers={"x-api-key": TEST_API_KEY})
    assert r.status_code == 200, r.text
    u = db_session.execute(select(User).where(User.id == student.id)).scalar_one()
    db_session.refresh(u)
    assert u.role == "admin"


def test_reset_db_requires_api_key(test_client):
    assert test_client.post("/ops/reset-db", headers={"x-api-key": "wrong"}).status_code == 401


def test_blank_content_update_is_rejected(test_client, db_session, admin_user, make_lesson, auth_headers):
    lesson = make_lesson("the cat sat")
    r = test_client.patch(
        f"/admin/lessons/{lesson.id}",
        json={"content": "   ", "title": "Autre titre"},
        headers=auth_headers(admin_user),
    )
    assert r.status_code == 400
    db_session.refresh(lesson)
    assert lesson.content == "the cat sat"
    assert lesson.title == "Leçon test"
