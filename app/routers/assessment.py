import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.deps import get_rank_policy
from app.data.healthcare_content import PLACEMENT_TEXT
from app.db.database import get_db
from app.db.models import User
from app.routers.auth import require_approved_student
from app.schemas.sessions import AssessmentIn, AssessmentOut, AssessmentTextOut, ScoreOut
from app.services.progress import ProgressSaveError, record_assessment
from app.services.rank_policy import RankPolicy, placement_level
from app.services.ranking import RankingRefreshError, refresh_rankings
from app.services.scoring import is_complete, score

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assessment", tags=["assessment"])


@router.get("/text", response_model=AssessmentTextOut)
def assessment_text(user: User = Depends(require_approved_student)):
    return AssessmentTextOut(content=PLACEMENT_TEXT)


@router.post("", response_model=AssessmentOut)
def submit_assessment(
    body: AssessmentIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_approved_student),
    policy: RankPolicy = Depends(get_rank_policy),
):
    result = score(PLACEMENT_TEXT, body.raw_input, body.elapsed_ms, min_elapsed_ms=get_settings().MIN_ELAPSED_MS)
    level = placement_level(result.wpm, result.accuracy, policy)

    try:
        record_assessment(
            db,
            student=user,
            reference=PLACEMENT_TEXT,
            elapsed_seconds=int(body.elapsed_ms // 1000),
            result=result,
            level=level,
        )
    except ProgressSaveError as e:
        raise HTTPException(status_code=503, detail=str(e))

    # la catégorie de l'élève a pu changer
    try:
        refresh_rankings(db, policy=policy)
    except RankingRefreshError:
        logger.warning("Classements non recalculés après évaluation (user=%s)", user.id)

    return AssessmentOut(
        score=ScoreOut(**result.as_dict(), is_complete=is_complete(PLACEMENT_TEXT, body.raw_input)),
        level=level,
    )
