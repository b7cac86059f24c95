from app.core.deps import get_rank_policy
from app.services.rank_policy import RankPolicy

LOW_POLICY = RankPolicy(version="test-low", grade_thresholds=(("S", 1000), ("A", 800), ("B", 60), ("C", 20)))


def test_my_ranking_is_computed_on_first_read(test_client, student, auth_headers):
    r = test_client.get("/rankings/me", headers=auth_headers(student))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["total_points"] == 0
    assert data["rank_grade"] == "D"
    assert data["rank_category"] == "beginner"
    assert data["policy_version"] == "2024.1"


def test_my_ranking_is_for_students_only(test_client, admin_user, auth_headers):
    assert test_client.get("/rankings/me", headers=auth_headers(admin_user)).status_code == 403


def test_leaderboard_groups_by_category(test_client, make_user, make_lesson, make_progress, auth_headers):
    a = make_user("a@example.com", level="beginner", full_name="Alice")
    b = make_user("b@example.com", level="beginner", full_name="Bob")
    c = make_user("c@example.com", level="advanced", full_name="Chloé")
    beginner = make_lesson("beginner text", level="beginner")
    advanced = make_lesson("advanced text", level="advanced")
    make_progress(a, beginner, wpm=25, accuracy=100)  # 40
    make_progress(b, beginner, wpm=10, accuracy=90)   # 25.2 -> 25
    make_progress(c, advanced, wpm=90, accuracy=100)  # 50, bonus plafonné

    r = test_client.get("/rankings/leaderboard", headers=auth_headers(a))
    assert r.status_code == 200, r.text
    cats = r.json()["categories"]
    assert set(cats) == {"beginner", "advanced"}

    assert [e["full_name"] for e in cats["beginner"]] == ["Alice", "Bob"]
    assert [e["category_position"] for e in cats["beginner"]] == [1, 2]
    assert [e["overall_position"] for e in cats["beginner"]] == [2, 3]
    assert cats["advanced"][0]["overall_position"] == 1
    assert cats["advanced"][0]["total_points"] == 50

    r = test_client.get("/rankings/leaderboard?category=advanced", headers=auth_headers(a))
    assert set(r.json()["categories"]) == {"advanced"}


def test_refresh_endpoint(test_client, student, auth_headers):
    r = test_client.post("/rankings/refresh", headers=auth_headers(student))
    assert r.status_code == 200
    assert r.json() == {"ok": True, "students": 1, "policy_version": "2024.1"}


def test_certificate_issued_on_upgrade_only_once(test_client, app, student, make_lesson, auth_headers):
    app.dependency_overrides[get_rank_policy] = lambda: LOW_POLICY
    lesson = make_lesson("the cat sat")
    h = auth_headers(student)

    body = {
        "lesson_id": lesson.id,
        "raw_input": "the cat sat",
        "started_at": "2026-01-01T10:00:00Z",
        "finished_at": "2026-01-01T10:00:30Z",
    }
    r = test_client.post("/sessions", json=body, headers=h)
    assert r.status_code == 200, r.text
    assert r.json()["ranking"]["rank_grade"] == "C"
    assert r.json()["ranking"]["policy_version"] == "test-low"

    # même leçon refaite : pas de nouveau certificat
    test_client.post("/sessions", json=body, headers=h)
    test_client.post("/rankings/refresh", headers=h)

    certs = test_client.get("/certifications/me", headers=h).json()["items"]
    assert len(certs) == 1
    assert certs[0]["rank_achieved"] == "C"
    assert certs[0]["points_at_issue"] == 25
    assert certs[0]["wpm_at_issue"] == 6.0


def test_refresh_failure_returns_503(test_client, student, auth_headers, monkeypatch):
    from app.routers import rankings as rankings_router
    from app.services.ranking import RankingRefreshError

    def failing(db, *, policy):
        raise RankingRefreshError("Recalcul des classements impossible, réessayer.")

    monkeypatch.setattr(rankings_router, "refresh_rankings", failing)
    r = test_client.post("/rankings/refresh", headers=auth_headers(student))
    assert r.status_code == 503


def test_promoted_student_leaves_the_leaderboard(test_client, db_session, make_user, make_lesson, make_progress, auth_headers):
    from app.db.models import RankingRecord

    a = make_user("a@example.com", full_name="Alice")
    b = make_user("b@example.com", full_name="Bob")
    make_progress(a, make_lesson("the cat sat"), wpm=30, accuracy=100)

    r = test_client.get("/rankings/leaderboard", headers=auth_headers(b))
    assert [e["user_id"] for e in r.json()["categories"]["beginner"]] == [a.id, b.id]

    r = test_client.post(f"/ops/make-admin?email={a.email}", headers={"x-api-key": "test-api-key"})
    assert r.status_code == 200, r.text

    r = test_client.get("/rankings/leaderboard", headers=auth_headers(b))
    entries = [e for items in r.json()["categories"].values() for e in items]
    assert [e["user_id"] for e in entries] == [b.id]
    assert [e["overall_position"] for e in entries] == [1]
    assert db_session.get(RankingRecord, a.id) is None
