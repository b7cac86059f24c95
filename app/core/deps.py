from app.core.config import get_settings
from app.services.content_service import ContentService
from app.services.rank_policy import DEFAULT_POLICY, RankPolicy
from app.services.speech_service import SpeechService


def get_settings_dep():
    return get_settings()


def get_rank_policy() -> RankPolicy:
    return DEFAULT_POLICY


def get_content_service() -> ContentService:
    """
    Fournit le générateur de contenu en dépendance (DI).
    """
    return ContentService.from_settings(get_settings())


def get_speech_service() -> SpeechService:
    return SpeechService.from_settings(get_settings())
