from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import select, desc

from app.db.database import get_db
from app.db.models import User, Certification
from app.routers.auth import get_current_user

router = APIRouter(prefix="/certifications", tags=["certifications"])


@router.get("/me")
def my_certifications(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows = db.execute(
        select(Certification)
        .where(Certification.user_id == user.id)
        .order_by(desc(Certification.issued_at), desc(Certification.id))
    ).scalars().all()
    return {
        "items": [
            {
                "id": c.id,
                "rank_achieved": c.rank_achieved,
                "points_at_issue": c.points_at_issue,
                "wpm_at_issue": c.wpm_at_issue,
                "accuracy_at_issue": c.accuracy_at_issue,
                "issued_at": c.issued_at.isoformat() if c.issued_at else None,
            }
            for c in rows
        ]
    }
