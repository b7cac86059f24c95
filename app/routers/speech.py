from fastapi import APIRouter, Depends, UploadFile, File, HTTPException
from starlette.status import (
    HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from app.core.deps import get_settings_dep, get_speech_service
from app.db.models import User
from app.models.speech import SpeechRequest, SpeechResponse, TranscriptionResponse
from app.routers.auth import require_admin
from app.services.speech_service import SpeechService, SpeechServiceError, SpeechServiceUnavailable

router = APIRouter(prefix="/speech", tags=["speech"])


def _provider_error(e: SpeechServiceError) -> HTTPException:
    if isinstance(e, SpeechServiceUnavailable):
        return HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return HTTPException(status_code=HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/transcribe", response_model=TranscriptionResponse)
def transcribe(
    audio: UploadFile = File(...),
    admin: User = Depends(require_admin),
    speech: SpeechService = Depends(get_speech_service),
    settings=Depends(get_settings_dep),
):
    """
    Dictée d'un texte de leçon : l'admin envoie un enregistrement, on renvoie le texte.
    """
    if not (audio.content_type or "").startswith("audio/"):
        raise HTTPException(
            status_code=HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Seuls les fichiers audio sont acceptés",
        )

    max_bytes = settings.MAX_AUDIO_MB * 1024 * 1024
    contents = audio.file.read()
    if len(contents) > max_bytes:
        raise HTTPException(
            status_code=HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Fichier trop volumineux (max {settings.MAX_AUDIO_MB} MB)",
        )

    try:
        return speech.transcribe(contents, audio.filename)
    except SpeechServiceError as e:
        raise _provider_error(e)


@router.post("/generate", response_model=SpeechResponse)
def generate(
    body: SpeechRequest,
    admin: User = Depends(require_admin),
    speech: SpeechService = Depends(get_speech_service),
):
    try:
        return speech.synthesize(body.text, voice_id=body.voiceId, speed=body.speed)
    except SpeechServiceError as e:
        raise _provider_error(e)
