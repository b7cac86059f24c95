from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.db.models import User, Lesson, Progress
from app.routers.auth import require_assessed_student
from app.schemas.lessons import StudentLessonOut

router = APIRouter(prefix="/lessons", tags=["lessons"])


def visible_lesson_or_404(db: Session, user: User, lesson_id: int) -> Lesson:
    """
    Leçon active, du niveau de l'élève ou "all".
    """
    lesson = db.execute(select(Lesson).where(Lesson.id == lesson_id)).scalar_one_or_none()
    if not lesson or lesson.archived:
        raise HTTPException(404, detail="Leçon introuvable.")
    if lesson.level not in (user.level, "all"):
        raise HTTPException(403, detail="Leçon hors de votre niveau.")
    return lesson


def _to_out(lesson: Lesson, progress: Progress | None) -> StudentLessonOut:
    out = StudentLessonOut.model_validate(lesson)
    if progress is not None:
        out.completed = bool(progress.completed)
        out.last_wpm = progress.wpm
        out.last_accuracy = progress.accuracy
    return out


@router.get("", response_model=list[StudentLessonOut])
def list_lessons(
    db: Session = Depends(get_db),
    user: User = Depends(require_assessed_student),
):
    lessons = db.execute(
        select(Lesson)
        .where(Lesson.archived.is_(False), or_(Lesson.level == user.level, Lesson.level == "all"))
        .order_by(Lesson.created_at.desc(), Lesson.id.desc())
    ).scalars().all()

    done = {
        p.lesson_id: p
        for p in db.execute(select(Progress).where(Progress.student_id == user.id)).scalars().all()
    }
    return [_to_out(l, done.get(l.id)) for l in lessons]


@router.get("/{lesson_id}", response_model=StudentLessonOut)
def get_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_assessed_student),
):
    lesson = visible_lesson_or_404(db, user, lesson_id)
    p = db.execute(
        select(Progress).where(Progress.student_id == user.id, Progress.lesson_id == lesson.id)
    ).scalar_one_or_none()
    return _to_out(lesson, p)
