"""Handles translation of canonical Tibetan text into English."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .exceptions import TranslationError
from .gemini import GeminiClient
from .prompts import TRANSLATE_PROMPT
from .utils import preview

logger = logging.getLogger(__name__)

class Translator(ABC):
    """Abstract base class for translation services."""

    @abstractmethod
    async def translate(self, text: str, effort: Optional[int] = None) -> str:
        """
        Translates Tibetan text into English.

        Args:
            text: The Tibetan text to translate.
            effort: Service-native computation effort, already scaled from the
                    user's quality level. None lets the service pick its default.

        Returns:
            The translated text.

        Raises:
            TranslationError: If translation fails.
        """
        pass

class GeminiTranslator(Translator):
    """Implements translation with a Gemini thinking model."""

    def __init__(self, client: GeminiClient, model_name: str = "gemini-2.5-pro"):
        self.client = client
        self.model_name = model_name
        logger.info(f"Initializing GeminiTranslator with model '{self.model_name}'")

    async def translate(self, text: str, effort: Optional[int] = None) -> str:
        logger.debug(f"Translating (bo->en, effort={effort}): '{preview(text)}'")
        translation = await self.client.generate(
            model=self.model_name,
            contents=[TRANSLATE_PROMPT.format(text=text)],
            error_cls=TranslationError,
            error_prefix="Translation error",
            empty_message="Translation failed or returned empty.",
            effort=effort,
        )
        logger.debug(f"Translation result: '{preview(translation)}'")
        return translation
