import logging
import random
from typing import Optional

from app.data.healthcare_content import sample_for
from app.models.content import ContentSource, GenerateContentResponse

logger = logging.getLogger(__name__)

LENGTH_GUIDE = {
    "beginner": "short sentence (10-15 words)",
    "intermediate": "medium paragraph (30-50 words)",
    "advanced": "long paragraph (60-100 words)",
    "all": "medium paragraph (30-50 words)",
}


class ContentService:
    """
    Génération de texte de leçon.
    - Si un client OpenAI est fourni : demande un passage "santé" à la taille du niveau.
    - Sinon, ou en cas d'erreur : texte tiré du corpus de démo.
    """

    def __init__(self, client=None, model: str = "gpt-4o-mini", rng: Optional[random.Random] = None):
        self.client = client
        self.model = model
        self.rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings) -> "ContentService":
        client = None
        if settings.OPENAI_API_KEY:
            try:
                from openai import OpenAI  # openai>=1.0
                client = OpenAI(api_key=settings.OPENAI_API_KEY, timeout=settings.EXTERNAL_TIMEOUT_SECONDS)
            except Exception as e:
                logger.warning("OpenAI client indisponible (%s). Fallback corpus.", e)
        return cls(client=client, model=settings.OPENAI_CONTENT_MODEL)

    def _prompt(self, level: str, module_type: str) -> str:
        if module_type == "audio_sentence":
            size = "single sentence (8-12 words)"
        elif module_type == "audio_paragraph":
            size = "paragraph (50-70 words)"
        else:
            size = LENGTH_GUIDE.get(level, LENGTH_GUIDE["all"])
        return (
            f"Generate a {size} about healthcare terminology and medical procedures. "
            "The text should be suitable for typing practice and include proper medical vocabulary. "
            "Make it educational and professionally written. Reply with the text only."
        )

    def generate(self, level: str, module_type: str = "text") -> GenerateContentResponse:
        # 1) Tentative OpenAI
        if self.client is not None:
            try:
                comp = self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": self._prompt(level, module_type)}],
                    max_tokens=200,
                    temperature=0.7,
                )
                text = (comp.choices[0].message.content or "").strip()
                if text:
                    return GenerateContentResponse(content=text, source=ContentSource.openai)
                logger.warning("OpenAI a renvoyé un texte vide. Fallback corpus.")
            except Exception as e:
                logger.warning("OpenAI error: %s. Fallback corpus.", e)

        # 2) Fallback corpus local
        return GenerateContentResponse(
            content=sample_for(level, module_type, rng=self.rng),
            source=ContentSource.sample,
        )
