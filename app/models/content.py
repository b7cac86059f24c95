from enum import Enum
from pydantic import BaseModel, Field


class Level(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"
    all = "all"


class ModuleType(str, Enum):
    text = "text"
    audio_sentence = "audio_sentence"
    audio_paragraph = "audio_paragraph"


class ContentSource(str, Enum):
    openai = "openai"
    sample = "sample"


class GenerateContentRequest(BaseModel):
    level: Level = Field(default=Level.beginner)
    module_type: ModuleType = Field(default=ModuleType.text)


class GenerateContentResponse(BaseModel):
    content: str
    source: ContentSource
