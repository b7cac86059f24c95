from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import User, Lesson, Progress, RankingRecord, Certification
from app.services.certification import maybe_issue_certificate
from app.services.rank_policy import (
    DEFAULT_POLICY,
    UNASSIGNED,
    RankPolicy,
    grade_for_points,
    session_points,
    theme_for_grade,
)
from app.services.scoring import round_half_up

logger = logging.getLogger(__name__)


class RankingRefreshError(RuntimeError):
    """Le recalcul a échoué ; les classements précédents sont intacts."""


# =========================================================
# Types (frontière ORM -> coeur)
# =========================================================
@dataclass(frozen=True)
class SessionRecord:
    student_id: int
    lesson_id: int
    wpm: int
    accuracy: int
    error_count: int
    time_spent_seconds: int
    level: Optional[str] = None  # niveau de la leçon (résolu par l'appelant)
    finished_at: Optional[datetime] = None

    def __post_init__(self):
        if not 0 <= self.accuracy <= 100:
            raise ValueError(f"accuracy hors bornes: {self.accuracy}")
        if self.wpm < 0:
            raise ValueError(f"wpm négatif: {self.wpm}")
        if self.error_count < 0 or self.time_spent_seconds < 0:
            raise ValueError("error_count / time_spent_seconds négatifs")


@dataclass(frozen=True)
class StudentAggregate:
    total_points: int
    average_wpm: float
    average_accuracy: float
    rank_grade: str
    theme: str
    total_lessons_completed: int
    total_time_spent_seconds: int
    policy_version: str


@dataclass(frozen=True)
class StudentStanding:
    student_id: int
    category: str
    registered_at: Optional[datetime]
    aggregate: StudentAggregate
    overall_position: int = 0
    category_position: int = 0


# =========================================================
# Agrégation (pure)
# =========================================================
def _latest_per_lesson(history: Iterable[SessionRecord]) -> List[SessionRecord]:
    latest: Dict[int, SessionRecord] = {}
    for rec in history:
        cur = latest.get(rec.lesson_id)
        if cur is None:
            latest[rec.lesson_id] = rec
            continue
        # plus récent gagne ; à égalité / date absente, le dernier vu
        if cur.finished_at is None or rec.finished_at is None or rec.finished_at >= cur.finished_at:
            latest[rec.lesson_id] = rec
    return [latest[k] for k in sorted(latest)]


def aggregate(history: Iterable[SessionRecord], *, policy: RankPolicy = DEFAULT_POLICY) -> StudentAggregate:
    """
    Résumé d'un élève, fonction pure de son historique (idempotent).
    Une seule session retenue par leçon : la plus récente.
    """
    sessions = _latest_per_lesson(history)
    n = len(sessions)

    if n:
        avg_wpm = round_half_up(sum(s.wpm for s in sessions) / n, 1)
        avg_acc = round_half_up(sum(s.accuracy for s in sessions) / n, 1)
    else:
        avg_wpm = 0.0
        avg_acc = 0.0

    points = sum(session_points(s.accuracy, s.wpm, s.level, policy) for s in sessions)
    grade = grade_for_points(points, policy)

    return StudentAggregate(
        total_points=points,
        average_wpm=avg_wpm,
        average_accuracy=avg_acc,
        rank_grade=grade,
        theme=theme_for_grade(grade, policy),
        total_lessons_completed=n,
        total_time_spent_seconds=sum(s.time_spent_seconds for s in sessions),
        policy_version=policy.version,
    )


def _order_key(st: StudentStanding):
    a = st.aggregate
    # registered_at absent -> en fin de départage, l'id tranche toujours
    reg = st.registered_at.timestamp() if st.registered_at else float("inf")
    return (-a.total_points, -a.average_accuracy, -a.average_wpm, reg, st.student_id)


def rank_students(standings: Sequence[StudentStanding]) -> List[StudentStanding]:
    """
    Ordre total strict : points desc, précision desc, WPM desc, puis ordre
    d'inscription. Positions 1..n globales et par catégorie.
    """
    ordered = sorted(standings, key=_order_key)
    per_category: Dict[str, int] = {}
    out: List[StudentStanding] = []
    for i, st in enumerate(ordered):
        per_category[st.category] = per_category.get(st.category, 0) + 1
        out.append(replace(st, overall_position=i + 1, category_position=per_category[st.category]))
    return out


# =========================================================
# Recalcul persistant
# =========================================================
def session_records_for(db: Session, student_ids: Optional[Sequence[int]] = None) -> Dict[int, List[SessionRecord]]:
    stmt = (
        select(Progress, Lesson.level)
        .join(Lesson, Lesson.id == Progress.lesson_id)
        .where(Progress.completed.is_(True))
    )
    if student_ids is not None:
        stmt = stmt.where(Progress.student_id.in_(list(student_ids)))

    out: Dict[int, List[SessionRecord]] = {}
    for p, lesson_level in db.execute(stmt).all():
        out.setdefault(p.student_id, []).append(
            SessionRecord(
                student_id=p.student_id,
                lesson_id=p.lesson_id,
                wpm=int(p.wpm or 0),
                accuracy=int(p.accuracy or 0),
                error_count=int(p.error_count or 0),
                time_spent_seconds=int(p.time_spent_seconds or 0),
                level=lesson_level,
                finished_at=p.finished_at,
            )
        )
    return out


def compute_standings(db: Session, *, policy: RankPolicy = DEFAULT_POLICY) -> List[StudentStanding]:
    students = db.execute(
        select(User).where(User.role == "student").order_by(User.created_at.asc(), User.id.asc())
    ).scalars().all()
    history = session_records_for(db)

    standings = []
    for u in students:
        # catégorie = niveau évalué de l'élève
        category = u.level or UNASSIGNED
        # leçons "all" : cible WPM du niveau de l'élève
        records = [
            replace(r, level=u.level) if (r.level or "all") == "all" else r
            for r in history.get(u.id, [])
        ]
        standings.append(
            StudentStanding(
                student_id=u.id,
                category=category,
                registered_at=u.created_at,
                aggregate=aggregate(records, policy=policy),
            )
        )
    return rank_students(standings)


def refresh_rankings(db: Session, *, policy: RankPolicy = DEFAULT_POLICY) -> List[StudentStanding]:
    """
    Recalcule tous les classements + émet les certificats, en une transaction.
    En cas d'erreur : rollback (rien n'est modifié) puis RankingRefreshError.
    """
    try:
        ranked = compute_standings(db, policy=policy)

        existing = {
            r.user_id: r for r in db.execute(select(RankingRecord)).scalars().all()
        }
        issued: Dict[int, set] = {}
        for user_id, rank in db.execute(select(Certification.user_id, Certification.rank_achieved)).all():
            issued.setdefault(user_id, set()).add(rank)

        new_certs = 0
        for st in ranked:
            a = st.aggregate
            row = existing.get(st.student_id)
            previous_grade = row.rank_grade if row else None
            if row is None:
                row = RankingRecord(user_id=st.student_id)
                db.add(row)

            row.total_points = a.total_points
            row.average_wpm = a.average_wpm
            row.average_accuracy = a.average_accuracy
            row.rank_grade = a.rank_grade
            row.rank_category = st.category
            row.overall_position = st.overall_position
            row.category_position = st.category_position
            row.total_lessons_completed = a.total_lessons_completed
            row.total_time_spent_seconds = a.total_time_spent_seconds
            row.theme = a.theme
            row.policy_version = a.policy_version

            draft = maybe_issue_certificate(
                previous_grade,
                a.rank_grade,
                a,
                already_issued=issued.get(st.student_id, ()),
            )
            if draft is not None:
                db.add(Certification(user_id=st.student_id, **draft.as_row()))
                issued.setdefault(st.student_id, set()).add(draft.rank_achieved)
                new_certs += 1
                logger.info("Certificat %s émis pour user=%s", draft.rank_achieved, st.student_id)

        # lignes orphelines (compte promu admin, supprimé) : hors classement
        stale = set(existing) - {st.student_id for st in ranked}
        if stale:
            db.execute(delete(RankingRecord).where(RankingRecord.user_id.in_(stale)))

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Recalcul des classements échoué")
        raise RankingRefreshError("Recalcul des classements impossible, réessayer.") from e

    logger.info("Classements recalculés: %d élèves, %d certificat(s)", len(ranked), new_certs)
    return ranked
