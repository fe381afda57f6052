"""Handles merging per-page transcripts into one canonical text."""

import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from .exceptions import FormattingError
from .gemini import GeminiClient
from .models import ImageTask
from .prompts import FORMAT_PROMPT, PAGE_LABEL

logger = logging.getLogger(__name__)

class TranscriptFormatter(ABC):
    """Abstract base class for transcript formatters."""

    @abstractmethod
    async def format(self, pages: List[Tuple[ImageTask, str]]) -> str:
        """
        Merges and cleans the transcripts of successfully transcribed pages.

        Args:
            pages: (image, transcript) pairs in page order. Failed pages are
                   never included.

        Returns:
            The merged canonical text.

        Raises:
            FormattingError: If merging fails. No partial result is returned.
        """
        pass

class GeminiFormatter(TranscriptFormatter):
    """Formats transcripts by sending every page image with its transcript to Gemini."""

    def __init__(self, client: GeminiClient, model_name: str = "gemini-2.5-pro"):
        self.client = client
        self.model_name = model_name
        logger.info(f"Initializing GeminiFormatter with model '{self.model_name}'")

    def build_contents(self, pages: List[Tuple[ImageTask, str]]) -> list:
        contents: list = [FORMAT_PROMPT.format(page_count=len(pages))]
        for number, (image, transcript) in enumerate(pages, start=1):
            contents.append(GeminiClient.image_part(image.data, image.mime_type))
            contents.append(PAGE_LABEL.format(number=number, transcript=transcript))
        return contents

    async def format(self, pages: List[Tuple[ImageTask, str]]) -> str:
        if not pages:
            raise FormattingError("Formatting error: no transcribed pages to format")
        logger.info(f"Formatting {len(pages)} transcribed page(s)...")
        text = await self.client.generate(
            model=self.model_name,
            contents=self.build_contents(pages),
            error_cls=FormattingError,
            error_prefix="Formatting error",
            empty_message="Formatting failed or returned empty.",
        )
        logger.info(f"Formatting completed ({len(text)} characters).")
        return text
