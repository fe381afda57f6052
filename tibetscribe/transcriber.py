"""Handles transcription of Tibetan page images."""

import logging
from abc import ABC, abstractmethod

from .exceptions import TranscriptionError
from .gemini import GeminiClient
from .models import ImageTask
from .prompts import TRANSCRIBE_PROMPT
from .utils import preview

logger = logging.getLogger(__name__)

class Transcriber(ABC):
    """Abstract base class for transcription services."""

    @abstractmethod
    async def transcribe(self, image: ImageTask) -> str:
        """
        Transcribes the Tibetan text of one page image.

        Args:
            image: The image task holding the raw bytes and MIME type.

        Returns:
            The transcribed text.

        Raises:
            TranscriptionError: If transcription fails or returns nothing.
        """
        pass

class GeminiTranscriber(Transcriber):
    """Implements transcription with a Gemini vision model."""

    def __init__(self, client: GeminiClient, model_name: str = "gemini-2.0-flash"):
        """
        Initializes the GeminiTranscriber.

        Args:
            client: Shared Gemini client.
            model_name: The Gemini model used for transcription.
        """
        self.client = client
        self.model_name = model_name
        logger.info(f"Initializing GeminiTranscriber with model '{self.model_name}'")

    async def transcribe(self, image: ImageTask) -> str:
        logger.info(f"Starting transcription for: {image.source_ref}")
        if not image.data:
            raise TranscriptionError(f"Transcription error: image {image.source_ref} has no data")

        text = await self.client.generate(
            model=self.model_name,
            contents=[GeminiClient.image_part(image.data, image.mime_type), TRANSCRIBE_PROMPT],
            error_cls=TranscriptionError,
            error_prefix="Transcription error",
            empty_message="Transcription failed or returned empty.",
        )
        logger.info(f"Transcription completed for {image.source_ref}: '{preview(text)}'")
        return text
