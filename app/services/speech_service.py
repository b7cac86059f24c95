import base64
import logging
from typing import Optional

from app.models.speech import SpeechResponse, TranscriptionResponse

logger = logging.getLogger(__name__)


class SpeechServiceError(RuntimeError):
    """Le fournisseur a échoué (réseau, timeout, réponse invalide)."""


class SpeechServiceUnavailable(SpeechServiceError):
    """Aucune clé configurée."""


class SpeechService:
    """
    Transcription (audio -> texte) et synthèse (texte -> audio) via OpenAI.
    Jamais utilisé dans le calcul des scores : une panne ici ne bloque pas les leçons.
    """

    def __init__(self, client=None, stt_model: str = "whisper-1", tts_model: str = "tts-1"):
        self.client = client
        self.stt_model = stt_model
        self.tts_model = tts_model

    @classmethod
    def from_settings(cls, settings) -> "SpeechService":
        client = None
        if settings.OPENAI_API_KEY:
            from openai import OpenAI  # openai>=1.0
            client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.EXTERNAL_TIMEOUT_SECONDS)
        return cls(client=client, stt_model=settings.OPENAI_STT_MODEL, tts_model=settings.OPENAI_TTS_MODEL)

    def _require_client(self):
        if self.client is None:
            raise SpeechServiceUnavailable("OPENAI_API_KEY non configurée côté serveur.")
        return self.client

    def transcribe(self, audio: bytes, filename: Optional[str] = None) -> TranscriptionResponse:
        client = self._require_client()
        if not audio:
            raise SpeechServiceError("Fichier audio vide.")

        name = filename or "audio.mp3"
        try:
            res = client.audio.transcriptions.create(model=self.stt_model, file=(name, audio))
        except Exception as e:
            logger.warning("Transcription error: %s", e)
            raise SpeechServiceError("Échec de la transcription.") from e

        text = getattr(res, "text", None)
        if text is None and isinstance(res, str):
            text = res
        return TranscriptionResponse(transcript=(text or "").strip(), filename=name)

    def synthesize(self, text: str, voice_id: str = "alloy", speed: float = 1.0) -> SpeechResponse:
        client = self._require_client()
        try:
            res = client.audio.speech.create(
                model=self.tts_model,
                voice=voice_id,
                input=text,
                speed=speed,
                response_format="mp3",
            )
            audio = res.content
        except Exception as e:
            logger.warning("TTS error: %s", e)
            raise SpeechServiceError("Échec de la génération audio.") from e

        if not audio:
            raise SpeechServiceError("Réponse audio vide.")

        b64 = base64.b64encode(audio).decode("ascii")
        return SpeechResponse(audioUrl=f"data:audio/mpeg;base64,{b64}")
