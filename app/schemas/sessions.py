from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScoreOut(BaseModel):
    wpm: int
    accuracy: int
    error_count: int
    correct_chars: int
    typed_chars: int
    reference_chars: int
    elapsed_ms: int
    is_complete: bool


# -------------------
# Preview (pas de persistance)
# -------------------
class ScorePreviewIn(BaseModel):
    lesson_id: int
    raw_input: str = Field(default="", max_length=20000)
    elapsed_ms: float = Field(..., ge=0, allow_inf_nan=False)


# -------------------
# Fin de session
# -------------------
class SessionSubmitIn(BaseModel):
    lesson_id: int
    raw_input: str = Field(default="", max_length=20000)
    started_at: datetime
    finished_at: datetime
    # bouton "Finish early" : autorise le score avant la fin du texte
    finished_early: bool = False

    @model_validator(mode="after")
    def _check_times(self):
        # horodatages naïfs = UTC
        if self.started_at.tzinfo is None:
            self.started_at = self.started_at.replace(tzinfo=timezone.utc)
        if self.finished_at.tzinfo is None:
            self.finished_at = self.finished_at.replace(tzinfo=timezone.utc)
        if self.finished_at < self.started_at:
            raise ValueError("finished_at doit être postérieur à started_at")
        return self


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: int
    wpm: int
    accuracy: int
    error_count: int
    time_spent_seconds: int
    started_at: datetime
    finished_at: datetime


class RankingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    total_points: int
    average_wpm: float
    average_accuracy: float
    rank_grade: str
    rank_category: str
    overall_position: int
    category_position: int
    total_lessons_completed: int
    total_time_spent_seconds: int
    theme: str
    policy_version: str


class SessionSubmitOut(BaseModel):
    score: ScoreOut
    progress: ProgressOut
    ranking: Optional[RankingOut] = None  # None si le recalcul a échoué


class ActivityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    activity_type: str
    lesson_id: Optional[int] = None
    duration_seconds: int
    wpm: int
    accuracy: int
    errors: int
    created_at: datetime


# -------------------
# Évaluation de placement
# -------------------
class AssessmentTextOut(BaseModel):
    content: str


class AssessmentIn(BaseModel):
    raw_input: str = Field(default="", max_length=20000)
    elapsed_ms: float = Field(..., ge=0, allow_inf_nan=False)


class AssessmentOut(BaseModel):
    score: ScoreOut
    level: str
