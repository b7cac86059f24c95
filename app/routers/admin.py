import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security import get_api_key
from app.db.database import Base, engine, get_db, init_db
from app.db.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ops", tags=["ops"])


@router.post("/reset-db")
def reset_db(_: str = Depends(get_api_key)):
    Base.metadata.drop_all(bind=engine)
    init_db()
    logger.warning("Base de données réinitialisée")
    return {"ok": True, "message": "db reset"}


@router.post("/make-admin")
def make_admin(
    email: str,
    db: Session = Depends(get_db),
    _: str = Depends(get_api_key),
):
    u = db.execute(select(User).where(User.email == email.strip())).scalar_one_or_none()
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    u.role = "admin"
    u.status = "approved"
    db.commit()
    return {"ok": True, "email": u.email, "role": u.role}
