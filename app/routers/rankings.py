from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.core.deps import get_rank_policy
from app.db.database import get_db
from app.db.models import User, RankingRecord
from app.routers.auth import get_current_user, require_student
from app.schemas.sessions import RankingOut
from app.services.rank_policy import RankPolicy
from app.services.ranking import RankingRefreshError, refresh_rankings

router = APIRouter(prefix="/rankings", tags=["rankings"])


def refresh_or_503(db: Session, policy: RankPolicy):
    try:
        return refresh_rankings(db, policy=policy)
    except RankingRefreshError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/refresh")
def refresh(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: RankPolicy = Depends(get_rank_policy),
):
    ranked = refresh_or_503(db, policy)
    return {"ok": True, "students": len(ranked), "policy_version": policy.version}


@router.get("/me", response_model=RankingOut)
def me(
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
    policy: RankPolicy = Depends(get_rank_policy),
):
    row = db.execute(select(RankingRecord).where(RankingRecord.user_id == user.id)).scalar_one_or_none()
    if row is None:
        # jamais calculé : on recalcule une fois
        refresh_or_503(db, policy)
        row = db.execute(select(RankingRecord).where(RankingRecord.user_id == user.id)).scalar_one_or_none()
    if row is None:
        raise HTTPException(404, detail="Classement introuvable.")
    return row


@router.get("/leaderboard")
def leaderboard(
    category: str | None = None,
    limit: int = 50,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    policy: RankPolicy = Depends(get_rank_policy),
):
    """
    Classement regroupé par catégorie (niveau évalué), trié par position.
    """
    limit = max(1, min(200, int(limit)))
    refresh_or_503(db, policy)

    stmt = (
        select(RankingRecord, User.full_name)
        .join(User, User.id == RankingRecord.user_id)
        .where(User.role == "student")
        .order_by(RankingRecord.overall_position.asc())
    )
    if category:
        stmt = stmt.where(RankingRecord.rank_category == category)

    groups: dict[str, list] = {}
    for r, full_name in db.execute(stmt).all():
        items = groups.setdefault(r.rank_category, [])
        if len(items) >= limit:
            continue
        items.append({
            "user_id": r.user_id,
            "full_name": full_name,
            "total_points": r.total_points,
            "rank_grade": r.rank_grade,
            "overall_position": r.overall_position,
            "category_position": r.category_position,
            "total_lessons_completed": r.total_lessons_completed,
            "average_wpm": r.average_wpm,
            "average_accuracy": r.average_accuracy,
            "total_time_spent_seconds": r.total_time_spent_seconds,
            "theme": r.theme,
        })
    return {"categories": groups, "policy_version": policy.version}

