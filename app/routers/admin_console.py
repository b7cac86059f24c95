from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session
from sqlalchemy import select, desc, func

from app.core.deps import get_rank_policy
from app.db.database import get_db
from app.db.models import User, Lesson, Progress, ActivityLog, Assessment, RankingRecord, Certification
from app.routers.auth import require_admin
from app.routers.rankings import refresh_or_503
from app.services.rank_policy import RankPolicy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin-console"])


# =========================================================
# Schemas
# =========================================================
class StudentStatus(str, Enum):
    approved = "approved"
    denied = "denied"


class StatusIn(BaseModel):
    status: StudentStatus


# =========================================================
# Helpers
# =========================================================
def get_user_or_404(db: Session, user_id: int) -> User:
    u = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not u:
        raise HTTPException(404, detail="User not found")
    return u


def _iso(d: datetime | None) -> str | None:
    return d.isoformat() if d else None


def _user_row(u: User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "full_name": u.full_name,
        "role": u.role,
        "status": u.status,
        "level": u.level,
        "created_at": _iso(u.created_at),
        "last_login_at": _iso(u.last_login_at),
    }


# =========================================================
# STUDENTS
# =========================================================
@router.get("/students")
def admin_students(
    q: str = "",
    status: str | None = None,
    limit: int = 25,
    offset: int = 0,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    limit = max(1, min(100, int(limit)))
    offset = max(0, int(offset))

    stmt = select(User).where(User.role == "student")
    if status:
        stmt = stmt.where(User.status == status)
    if q.strip():
        qq = f"%{q.strip()}%"
        stmt = stmt.where((User.email.like(qq)) | (User.full_name.like(qq)))

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    rows = db.execute(
        stmt.order_by(desc(User.created_at), User.id.asc()).limit(limit).offset(offset)
    ).scalars().all()

    return {
        "items": [_user_row(u) for u in rows],
        "total": int(total),
        "limit": limit,
        "offset": offset,
    }


@router.get("/users/{user_id}")
def admin_user_get(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return _user_row(get_user_or_404(db, user_id))


@router.post("/students/{user_id}/status")
def admin_student_status(
    user_id: int,
    body: StatusIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    u = get_user_or_404(db, user_id)
    if u.role != "student":
        raise HTTPException(400, detail="Seuls les élèves ont un statut de validation.")

    u.status = body.status.value
    u.updated_at = datetime.now(timezone.utc)
    db.commit()
    logger.info("Statut élève %s -> %s (admin=%s)", u.id, u.status, admin.id)
    return {"ok": True, "id": u.id, "status": u.status}


# =========================================================
# ANALYTICS
# =========================================================
@router.get("/analytics/overview")
def admin_analytics_overview(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    policy: RankPolicy = Depends(get_rank_policy),
):
    refresh_or_503(db, policy)

    by_status = dict(
        db.execute(
            select(User.status, func.count(User.id)).where(User.role == "student").group_by(User.status)
        ).all()
    )
    by_level = {
        (lvl or "unassigned"): int(c)
        for lvl, c in db.execute(
            select(User.level, func.count(User.id)).where(User.role == "student").group_by(User.level)
        ).all()
    }
    lessons_active = db.execute(select(func.count(Lesson.id)).where(Lesson.archived.is_(False))).scalar_one()
    sessions, avg_wpm, avg_acc, secs = db.execute(
        select(
            func.count(ActivityLog.id),
            func.avg(ActivityLog.wpm),
            func.avg(ActivityLog.accuracy),
            func.coalesce(func.sum(ActivityLog.duration_seconds), 0),
        ).where(ActivityLog.activity_type == "lesson")
    ).one()
    by_grade = dict(
        db.execute(select(RankingRecord.rank_grade, func.count(RankingRecord.user_id)).group_by(RankingRecord.rank_grade)).all()
    )

    return {
        "students_by_status": {k: int(v) for k, v in by_status.items()},
        "students_by_level": by_level,
        "students_by_grade": {k: int(v) for k, v in by_grade.items()},
        "lessons_active": int(lessons_active),
        "lesson_sessions": int(sessions or 0),
        "average_wpm": round(float(avg_wpm or 0), 1),
        "average_accuracy": round(float(avg_acc or 0), 1),
        "total_time_spent_seconds": int(secs or 0),
        "certifications_issued": int(db.execute(select(func.count(Certification.id))).scalar_one()),
    }


@router.get("/users/{user_id}/analytics")
def admin_user_analytics(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    policy: RankPolicy = Depends(get_rank_policy),
):
    u = get_user_or_404(db, user_id)
    refresh_or_503(db, policy)

    r = db.execute(select(RankingRecord).where(RankingRecord.user_id == u.id)).scalar_one_or_none()

    assessments = db.execute(
        select(Assessment).where(Assessment.student_id == u.id).order_by(desc(Assessment.created_at), desc(Assessment.id))
    ).scalars().all()

    recent = db.execute(
        select(Progress, Lesson.title)
        .join(Lesson, Lesson.id == Progress.lesson_id)
        .where(Progress.student_id == u.id, Progress.completed.is_(True))
        .order_by(desc(Progress.updated_at), desc(Progress.id))
        .limit(10)
    ).all()

    activity = db.execute(
        select(ActivityLog).where(ActivityLog.user_id == u.id).order_by(desc(ActivityLog.created_at), desc(ActivityLog.id)).limit(20)
    ).scalars().all()

    return {
        "user": _user_row(u),
        "ranking": None if r is None else {
            "total_points": r.total_points,
            "rank_grade": r.rank_grade,
            "rank_category": r.rank_category,
            "overall_position": r.overall_position,
            "category_position": r.category_position,
            "average_wpm": r.average_wpm,
            "average_accuracy": r.average_accuracy,
            "total_lessons_completed": r.total_lessons_completed,
            "total_time_spent_seconds": r.total_time_spent_seconds,
            "theme": r.theme,
        },
        "assessments": [
            {"wpm": a.wpm, "accuracy": a.accuracy, "level": a.assigned_level, "created_at": _iso(a.created_at)}
            for a in assessments
        ],
        "recent_progress": [
            {
                "lesson_id": p.lesson_id,
                "lesson_title": title,
                "wpm": p.wpm,
                "accuracy": p.accuracy,
                "time_spent_seconds": p.time_spent_seconds,
                "completed_at": _iso(p.finished_at),
            }
            for p, title in recent
        ],
        "activity": [
            {
                "activity_type": a.activity_type,
                "lesson_id": a.lesson_id,
                "duration_seconds": a.duration_seconds,
                "wpm": a.wpm,
                "accuracy": a.accuracy,
                "errors": a.errors,
                "created_at": _iso(a.created_at),
            }
            for a in activity
        ],
    }
