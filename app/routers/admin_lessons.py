from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select, desc, func

from app.core.deps import get_content_service
from app.db.database import get_db
from app.db.models import User, Lesson, Progress
from app.models.content import GenerateContentRequest, GenerateContentResponse
from app.routers.auth import require_admin
from app.schemas.lessons import LessonCreateIn, LessonUpdateIn, LessonOut
from app.services.content_service import ContentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/lessons", tags=["admin-lessons"])


def lesson_or_404(db: Session, lesson_id: int) -> Lesson:
    l = db.execute(select(Lesson).where(Lesson.id == lesson_id)).scalar_one_or_none()
    if not l:
        raise HTTPException(404, detail="Leçon introuvable.")
    return l


def is_referenced(db: Session, lesson_id: int) -> bool:
    cnt = db.execute(select(func.count(Progress.id)).where(Progress.lesson_id == lesson_id)).scalar_one()
    return int(cnt) > 0


@router.get("", response_model=list[LessonOut])
def list_lessons(
    include_archived: bool = False,
    level: str | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    stmt = select(Lesson).order_by(desc(Lesson.created_at), desc(Lesson.id))
    if not include_archived:
        stmt = stmt.where(Lesson.archived.is_(False))
    if level:
        stmt = stmt.where(Lesson.level == level)
    return db.execute(stmt).scalars().all()


@router.post("/generate", response_model=GenerateContentResponse)
def generate_content(
    body: GenerateContentRequest,
    admin: User = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    return content.generate(body.level.value, body.module_type.value)


@router.post("", response_model=LessonOut, status_code=201)
def create_lesson(
    payload: LessonCreateIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    l = Lesson(
        title=payload.title.strip(),
        content=payload.content.strip(),
        level=payload.level.value,
        module_type=payload.module_type.value,
        audio_url=payload.audio_url,
        voice_id=payload.voice_id,
        playback_speed=payload.playback_speed,
        created_by=admin.id,
    )
    if not l.content:
        raise HTTPException(400, detail="Contenu vide.")
    db.add(l)
    db.commit()
    db.refresh(l)
    return l


@router.get("/{lesson_id}", response_model=LessonOut)
def get_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return lesson_or_404(db, lesson_id)


@router.patch("/{lesson_id}", response_model=LessonOut)
def update_lesson(
    lesson_id: int,
    payload: LessonUpdateIn,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    l = lesson_or_404(db, lesson_id)
    if payload.content is not None and not payload.content.strip():
        raise HTTPException(400, detail="Contenu vide.")

    # texte et niveau figés dès qu'une session y fait référence (pas de re-score de l'historique)
    changes_scoring = (
        (payload.content is not None and payload.content.strip() != l.content)
        or (payload.level is not None and payload.level.value != l.level)
    )
    if changes_scoring and is_referenced(db, l.id):
        raise HTTPException(409, detail="Leçon déjà réalisée : contenu et niveau non modifiables.")

    if payload.title is not None:
        l.title = payload.title.strip()
    if payload.content is not None:
        l.content = payload.content.strip()
    if payload.level is not None:
        l.level = payload.level.value
    if payload.audio_url is not None:
        l.audio_url = payload.audio_url
    if payload.voice_id is not None:
        l.voice_id = payload.voice_id
    if payload.playback_speed is not None:
        l.playback_speed = payload.playback_speed
    db.commit()
    db.refresh(l)
    return l


@router.delete("/{lesson_id}")
def delete_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    l = lesson_or_404(db, lesson_id)
    if is_referenced(db, l.id):
        # l'historique reste valide : on archive
        l.archived = True
        db.commit()
        logger.info("Leçon %s archivée (référencée par des sessions)", l.id)
        return {"ok": True, "id": lesson_id, "archived": True}

    db.delete(l)
    db.commit()
    return {"ok": True, "id": lesson_id, "archived": False}
