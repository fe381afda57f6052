"""Handles contextual explanation and alternate translations of selected phrases."""

import logging
from abc import ABC, abstractmethod

from .exceptions import AlternatesError, ExplanationError
from .gemini import GeminiClient
from .prompts import ALTERNATES_PROMPT, EXPLAIN_PROMPT
from .utils import preview

logger = logging.getLogger(__name__)

class SelectionExplainer(ABC):
    """Abstract base class for the selection analysis services."""

    @abstractmethod
    async def explain(self, selected_text: str, canonical_text: str, translation: str) -> str:
        """
        Translates and explains a phrase in the context of the whole text.

        Raises:
            ExplanationError: If the explanation request fails.
        """
        pass

    @abstractmethod
    async def alternates(self, selected_text: str, canonical_text: str, translation: str) -> str:
        """
        Lists alternate English renderings of a phrase.

        Raises:
            AlternatesError: If the request fails.
        """
        pass

class GeminiExplainer(SelectionExplainer):
    """Implements both selection actions with one Gemini model."""

    def __init__(self, client: GeminiClient, model_name: str = "gemini-2.5-pro"):
        self.client = client
        self.model_name = model_name
        logger.info(f"Initializing GeminiExplainer with model '{self.model_name}'")

    async def explain(self, selected_text: str, canonical_text: str, translation: str) -> str:
        logger.info(f"Explaining selection: '{preview(selected_text)}'")
        prompt = EXPLAIN_PROMPT.format(full_text=canonical_text, translation=translation, selected=selected_text)
        return await self.client.generate(
            model=self.model_name,
            contents=[prompt],
            error_cls=ExplanationError,
            error_prefix="An error occurred during explanation",
            empty_message="Explanation failed or returned empty.",
        )

    async def alternates(self, selected_text: str, canonical_text: str, translation: str) -> str:
        logger.info(f"Fetching alternate translations for: '{preview(selected_text)}'")
        prompt = ALTERNATES_PROMPT.format(full_text=canonical_text, translation=translation, selected=selected_text)
        return await self.client.generate(
            model=self.model_name,
            contents=[prompt],
            error_cls=AlternatesError,
            error_prefix="An error occurred while fetching alternate translations",
            empty_message="Alternate translations failed or returned empty.",
        )
