from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, desc
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.deps import get_rank_policy
from app.db.database import get_db
from app.db.models import User, ActivityLog, RankingRecord
from app.routers.auth import require_assessed_student
from app.routers.lessons import visible_lesson_or_404
from app.schemas.sessions import (
    ScorePreviewIn, ScoreOut,
    SessionSubmitIn, SessionSubmitOut,
    ProgressOut, RankingOut, ActivityOut,
)
from app.services.progress import ProgressSaveError, record_session
from app.services.rank_policy import RankPolicy
from app.services.ranking import RankingRefreshError, refresh_rankings
from app.services.scoring import is_complete, score

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/score", response_model=ScoreOut)
def preview_score(
    body: ScorePreviewIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_assessed_student),
):
    """
    Stats "live" pendant la frappe ; rien n'est enregistré.
    """
    lesson = visible_lesson_or_404(db, user, body.lesson_id)
    result = score(lesson.content, body.raw_input, body.elapsed_ms, min_elapsed_ms=get_settings().MIN_ELAPSED_MS)
    return ScoreOut(**result.as_dict(), is_complete=is_complete(lesson.content, body.raw_input))


@router.post("", response_model=SessionSubmitOut)
def submit_session(
    body: SessionSubmitIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_assessed_student),
    policy: RankPolicy = Depends(get_rank_policy),
):
    lesson = visible_lesson_or_404(db, user, body.lesson_id)

    complete = is_complete(lesson.content, body.raw_input)
    if not complete and not body.finished_early:
        raise HTTPException(400, detail="Session non terminée (texte incomplet, utiliser finished_early).")

    elapsed_ms = (body.finished_at - body.started_at).total_seconds() * 1000
    result = score(lesson.content, body.raw_input, elapsed_ms, min_elapsed_ms=get_settings().MIN_ELAPSED_MS)

    # 1) persister (échec -> 503, rien n'est modifié)
    try:
        progress = record_session(
            db,
            student=user,
            lesson=lesson,
            raw_input=body.raw_input,
            started_at=body.started_at,
            finished_at=body.finished_at,
            result=result,
        )
    except ProgressSaveError as e:
        raise HTTPException(status_code=503, detail=str(e))

    # 2) recalcul des classements ; la session reste enregistrée même si ça échoue
    ranking = None
    try:
        refresh_rankings(db, policy=policy)
        row = db.execute(select(RankingRecord).where(RankingRecord.user_id == user.id)).scalar_one_or_none()
        if row is not None:
            ranking = RankingOut.model_validate(row)
    except RankingRefreshError:
        logger.warning("Session enregistrée mais classement non recalculé (user=%s)", user.id)

    return SessionSubmitOut(
        score=ScoreOut(**result.as_dict(), is_complete=complete),
        progress=ProgressOut.model_validate(progress),
        ranking=ranking,
    )


@router.get("/history", response_model=list[ActivityOut])
def history(
    limit: int = 20,
    offset: int = 0,
    db: Session = Depends(get_db),
    user: User = Depends(require_assessed_student),
):
    limit = max(1, min(100, int(limit)))
    offset = max(0, int(offset))

    rows = db.execute(
        select(ActivityLog)
        .where(ActivityLog.user_id == user.id)
        .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return rows
