from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    String,
    DateTime,
    Integer,
    Float,
    Boolean,
    ForeignKey,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[str] = mapped_column(String(16), default="student", nullable=False)  # student | admin
    status: Mapped[str] = mapped_column(String(16), default="pending", nullable=False)  # pending | approved | denied

    # niveau évalué (placement) ; None tant que pas d'évaluation
    level: Mapped[str | None] = mapped_column(String(16), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # ============================================================
    # Relations
    # ============================================================
    progress: Mapped[list["Progress"]] = relationship(
        "Progress",
        back_populates="student",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    ranking: Mapped["RankingRecord | None"] = relationship(
        "RankingRecord",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ============================================================
# LEÇONS
# ============================================================

class Lesson(Base):
    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    level: Mapped[str] = mapped_column(String(16), default="beginner", nullable=False, index=True)  # beginner|intermediate|advanced|all
    module_type: Mapped[str] = mapped_column(String(32), default="text", nullable=False)  # text|audio_sentence|audio_paragraph

    audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    voice_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    playback_speed: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)

    # supprimée mais référencée par l'historique -> archivée
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# ============================================================
# PROGRESSION (1 ligne par (élève, leçon)) + JOURNAL
# ============================================================

class Progress(Base):
    __tablename__ = "progress"
    __table_args__ = (UniqueConstraint("student_id", "lesson_id", name="uq_progress_student_lesson"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    lesson_id: Mapped[int] = mapped_column(ForeignKey("lessons.id"), index=True, nullable=False)

    completed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    raw_input: Mapped[str] = mapped_column(Text, default="", nullable=False)

    wpm: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accuracy: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    student: Mapped["User"] = relationship("User", back_populates="progress")
    lesson: Mapped["Lesson"] = relationship("Lesson")


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    activity_type: Mapped[str] = mapped_column(String(16), nullable=False)  # "lesson" | "assessment"
    lesson_id: Mapped[int | None] = mapped_column(ForeignKey("lessons.id"), nullable=True)

    duration_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    wpm: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accuracy: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    errors: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    text_content: Mapped[str] = mapped_column(Text, default="", nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Assessment(Base):
    __tablename__ = "assessments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    wpm: Mapped[int] = mapped_column(Integer, nullable=False)
    accuracy: Mapped[int] = mapped_column(Integer, nullable=False)
    error_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    assigned_level: Mapped[str] = mapped_column(String(16), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


# ============================================================
# CLASSEMENT (dérivé) + CERTIFICATS
# ============================================================

class RankingRecord(Base):
    __tablename__ = "user_rankings"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    average_wpm: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    average_accuracy: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    rank_grade: Mapped[str] = mapped_column(String(1), default="D", nullable=False)  # S|A|B|C|D
    rank_category: Mapped[str] = mapped_column(String(16), default="unassigned", nullable=False)
    overall_position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    category_position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    total_lessons_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_time_spent_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    theme: Mapped[str] = mapped_column(String(16), default="standard", nullable=False)
    policy_version: Mapped[str] = mapped_column(String(32), default="", nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    user: Mapped["User"] = relationship("User", back_populates="ranking")


class Certification(Base):
    __tablename__ = "certifications"
    __table_args__ = (UniqueConstraint("user_id", "rank_achieved", name="uq_cert_user_rank"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    rank_achieved: Mapped[str] = mapped_column(String(1), nullable=False)
    points_at_issue: Mapped[int] = mapped_column(Integer, nullable=False)
    wpm_at_issue: Mapped[float] = mapped_column(Float, nullable=False)
    accuracy_at_issue: Mapped[float] = mapped_column(Float, nullable=False)

    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
