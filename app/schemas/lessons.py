from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.content import Level, ModuleType


# -------------------
# Lessons
# -------------------
class LessonCreateIn(BaseModel):
    title: str = Field(min_length=2, max_length=200)
    content: str = Field(min_length=1, max_length=8000)
    level: Level = Level.beginner
    module_type: ModuleType = ModuleType.text
    audio_url: Optional[str] = None
    voice_id: Optional[str] = Field(default=None, max_length=64)
    playback_speed: float = Field(default=1.0, ge=0.25, le=4.0)


class LessonUpdateIn(BaseModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1, max_length=8000)
    level: Optional[Level] = None
    audio_url: Optional[str] = None
    voice_id: Optional[str] = Field(default=None, max_length=64)
    playback_speed: Optional[float] = Field(default=None, ge=0.25, le=4.0)


class LessonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    level: str
    module_type: str
    audio_url: Optional[str] = None
    voice_id: Optional[str] = None
    playback_speed: float
    archived: bool
    created_at: datetime


class StudentLessonOut(LessonOut):
    completed: bool = False
    last_wpm: Optional[int] = None
    last_accuracy: Optional[int] = None
