from fastapi import APIRouter, Depends
from app.core.config import get_settings
from app.core.deps import get_rank_policy
from app.services.rank_policy import RankPolicy

router = APIRouter(tags=["system"])

@router.get("/health")
def health():
    s = get_settings()
    return {"status": "ok", "version": s.APP_VERSION}

@router.get("/version")
def version(policy: RankPolicy = Depends(get_rank_policy)):
    s = get_settings()
    return {"name": s.APP_NAME, "version": s.APP_VERSION, "env": s.APP_ENV, "rank_policy": policy.version}
