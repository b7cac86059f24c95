from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import User, Lesson, Progress, ActivityLog, Assessment
from app.services.scoring import SessionScore

logger = logging.getLogger(__name__)


class ProgressSaveError(RuntimeError):
    """Écriture refusée par la base ; rien n'a été modifié, on peut réessayer."""


def _apply(p: Progress, *, raw_input: str, started_at: datetime, finished_at: datetime, result: SessionScore, time_spent_seconds: int):
    p.completed = True
    p.raw_input = raw_input
    p.started_at = started_at
    p.finished_at = finished_at
    p.wpm = result.wpm
    p.accuracy = result.accuracy
    p.error_count = result.error_count
    p.time_spent_seconds = time_spent_seconds
    p.updated_at = datetime.now(timezone.utc)


def _find(db: Session, student_id: int, lesson_id: int) -> Progress | None:
    return db.execute(
        select(Progress).where(Progress.student_id == student_id, Progress.lesson_id == lesson_id)
    ).scalar_one_or_none()


def record_session(
    db: Session,
    *,
    student: User,
    lesson: Lesson,
    raw_input: str,
    started_at: datetime,
    finished_at: datetime,
    result: SessionScore,
) -> Progress:
    """
    Upsert de la ligne (élève, leçon) + ajout au journal d'activité, en un commit.
    """
    time_spent = max(0, int((finished_at - started_at).total_seconds()))
    fields = dict(raw_input=raw_input, started_at=started_at, finished_at=finished_at, result=result, time_spent_seconds=time_spent)

    log = ActivityLog(
        user_id=student.id,
        activity_type="lesson",
        lesson_id=lesson.id,
        duration_seconds=time_spent,
        wpm=result.wpm,
        accuracy=result.accuracy,
        errors=result.error_count,
        text_content=lesson.content,
    )

    try:
        p = _find(db, student.id, lesson.id)
        if p is None:
            p = Progress(student_id=student.id, lesson_id=lesson.id)
            db.add(p)
        _apply(p, **fields)
        db.add(log)
        db.commit()
    except IntegrityError:
        # insert concurrent sur la même clé : on repasse en update
        db.rollback()
        try:
            p = _find(db, student.id, lesson.id)
            if p is None:
                raise ProgressSaveError("Progression introuvable après conflit.")
            _apply(p, **fields)
            db.add(ActivityLog(**{c: getattr(log, c) for c in (
                "user_id", "activity_type", "lesson_id", "duration_seconds", "wpm", "accuracy", "errors", "text_content",
            )}))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Sauvegarde progression échouée (user=%s, lesson=%s)", student.id, lesson.id)
            raise ProgressSaveError("Sauvegarde impossible, réessayer.") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Sauvegarde progression échouée (user=%s, lesson=%s)", student.id, lesson.id)
        raise ProgressSaveError("Sauvegarde impossible, réessayer.") from e

    db.refresh(p)
    return p


def record_assessment(
    db: Session,
    *,
    student: User,
    reference: str,
    elapsed_seconds: int,
    result: SessionScore,
    level: str,
) -> Assessment:
    a = Assessment(
        student_id=student.id,
        wpm=result.wpm,
        accuracy=result.accuracy,
        error_count=result.error_count,
        assigned_level=level,
    )
    try:
        db.add(a)
        db.add(ActivityLog(
            user_id=student.id,
            activity_type="assessment",
            lesson_id=None,
            duration_seconds=max(0, int(elapsed_seconds)),
            wpm=result.wpm,
            accuracy=result.accuracy,
            errors=result.error_count,
            text_content=reference,
        ))
        student.level = level
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Sauvegarde évaluation échouée (user=%s)", student.id)
        raise ProgressSaveError("Sauvegarde impossible, réessayer.") from e

    db.refresh(a)
    return a
