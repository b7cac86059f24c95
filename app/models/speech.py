from typing import Optional
from pydantic import BaseModel, Field


class SpeechRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=4096)
    voiceId: str = Field(default="alloy", min_length=1, description="Voix du fournisseur TTS")
    speed: float = Field(default=1.0, ge=0.25, le=4.0)


class SpeechResponse(BaseModel):
    audioUrl: str = Field(..., description="data:audio/mpeg;base64,...")
    success: bool = True


class TranscriptionResponse(BaseModel):
    transcript: str
    success: bool = True
    filename: Optional[str] = None
