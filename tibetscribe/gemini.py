"""Shared access to the Gemini API used by every analysis stage."""

import logging
import os
import time
from typing import Any, List, Optional, Type

from google import genai
from google.genai import types

from .exceptions import ConfigurationError, TibetScribeError

logger = logging.getLogger(__name__)

class GeminiClient:
    """
    Thin asynchronous wrapper around `google.genai.Client`.

    Every call is a single request/response; failures surface as the
    stage-specific exception passed by the caller and are never retried.
    """

    def __init__(self, api_key: Optional[str] = None, api_key_env: str = "GEMINI_API_KEY", client: Any = None):
        """
        Initializes the client.

        Args:
            api_key: Explicit API key. Falls back to the `api_key_env` environment variable.
            api_key_env: Name of the environment variable holding the key.
            client: Pre-built client object (used by tests); skips key lookup.

        Raises:
            ConfigurationError: If no API key is available.
        """
        if client is not None:
            self.client = client
            return
        key = api_key or os.environ.get(api_key_env)
        if not key:
            raise ConfigurationError(f"{api_key_env} environment variable not set")
        self.client = genai.Client(api_key=key)
        logger.info("Gemini client initialized.")

    @staticmethod
    def image_part(data: bytes, mime_type: str) -> types.Part:
        return types.Part.from_bytes(data=data, mime_type=mime_type)

    async def generate(
        self,
        model: str,
        contents: List[Any],
        error_cls: Type[TibetScribeError],
        error_prefix: str,
        empty_message: str,
        effort: Optional[int] = None,
    ) -> str:
        """
        Sends one generate-content request and returns the response text.

        Args:
            model: Gemini model name.
            contents: Prompt parts (strings and/or `types.Part`).
            error_cls: Exception type raised on failure.
            error_prefix: Prefix of the raised error message, e.g. "Translation error".
            empty_message: Message used when the model returns no text.
            effort: Thinking budget in tokens; omitted from the request when None.

        Returns:
            The generated text.

        Raises:
            error_cls: If the request fails or returns an empty text.
        """
        config = None
        if effort is not None:
            config = types.GenerateContentConfig(
                thinking_config=types.ThinkingConfig(thinking_budget=effort)
            )

        t0 = time.monotonic()
        logger.debug(f"API call start: model={model}, effort={effort}")
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
            text = response.text
            if not text:
                raise error_cls(empty_message)
        except Exception as e:
            logger.error(f"API call failed: model={model}, duration={time.monotonic() - t0:.1f}s - {e}")
            raise error_cls(f"{error_prefix}: {e}") from e

        logger.debug(f"API call done: model={model}, duration={time.monotonic() - t0:.1f}s, chars={len(text)}")
        return text
