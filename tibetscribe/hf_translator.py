"""Handles offline translation using a Hugging Face NLLB model."""

import asyncio
import logging
import re
import torch
from transformers import AutoTokenizer, AutoModelForSeq2SeqLM
from typing import List, Optional

from .exceptions import TranslationError
from .translator import Translator
from .utils import MAX_NATIVE_EFFORT, MIN_NATIVE_EFFORT, preview

logger = logging.getLogger(__name__)

SOURCE_LANG = "bod_Tibt"
TARGET_LANG = "eng_Latn"
DEFAULT_BEAMS = 4
MAX_BEAMS = 8

def effort_to_beams(effort: Optional[int]) -> int:
    """Maps a native effort value in [128, 32768] to a beam width in [1, MAX_BEAMS]."""
    if effort is None:
        return DEFAULT_BEAMS
    fraction = (effort - MIN_NATIVE_EFFORT) / (MAX_NATIVE_EFFORT - MIN_NATIVE_EFFORT)
    fraction = min(max(fraction, 0.0), 1.0)
    return 1 + int(round(fraction * (MAX_BEAMS - 1)))

def split_paragraphs(text: str) -> List[str]:
    """Splits text on blank lines so each chunk fits the model's input window."""
    return [p.strip() for p in re.split(r"\n\s*\n", text) if p.strip()]

class HuggingFaceTranslator(Translator):
    """Implements translation using Hugging Face Transformers models."""

    def __init__(self, model_name: str = "facebook/nllb-200-distilled-600M", device: str = "cuda"):
        """
        Initializes the HuggingFaceTranslator.

        Args:
            model_name: The name of the Hugging Face translation model.
            device: The device to run the model on ("cuda" or "cpu").

        Raises:
            ValueError: If the specified device is invalid or unavailable.
            TranslationError: If the model or tokenizer fails to load.
        """
        self.model_name = model_name
        self.device = device

        if self.device == "cuda" and not torch.cuda.is_available():
            logger.warning(f"CUDA device requested but not available for translation. Falling back to CPU.")
            self.device = "cpu"
        elif self.device not in ["cuda", "cpu"]:
             raise ValueError(f"Invalid device specified: {self.device}. Choose 'cuda' or 'cpu'.")

        logger.info(f"Initializing HuggingFaceTranslator with model '{self.model_name}' on device '{self.device}'")
        try:
            self.tokenizer = AutoTokenizer.from_pretrained(self.model_name, src_lang=SOURCE_LANG)
            self.model = AutoModelForSeq2SeqLM.from_pretrained(self.model_name)
            self.model.to(self.device)
            self.model.eval() # Set model to evaluation mode
            logger.info(f"Hugging Face translation model '{self.model_name}' loaded successfully.")
        except Exception as e:
            logger.error(f"Failed to load translation model or tokenizer '{self.model_name}': {e}", exc_info=True)
            raise TranslationError(f"Failed to load translation model/tokenizer '{self.model_name}': {e}") from e

    def _translate_chunk(self, chunk: str, num_beams: int) -> str:
        inputs = self.tokenizer(chunk, return_tensors="pt", padding=True, truncation=True, max_length=512)
        inputs = {k: v.to(self.device) for k, v in inputs.items()}
        with torch.no_grad():
            translated_tokens = self.model.generate(
                **inputs,
                forced_bos_token_id=self.tokenizer.convert_tokens_to_ids(TARGET_LANG),
                num_beams=num_beams,
                max_new_tokens=512,
            )
        return self.tokenizer.decode(translated_tokens[0], skip_special_tokens=True)

    def translate_sync(self, text: str, effort: Optional[int] = None) -> str:
        """
        Translates text paragraph by paragraph on the calling thread.

        Raises:
            TranslationError: If the translation process fails.
        """
        chunks = split_paragraphs(text)
        if not chunks:
            raise TranslationError("Translation error: nothing to translate")

        num_beams = effort_to_beams(effort)
        logger.debug(f"Translating {len(chunks)} paragraph(s) with {num_beams} beam(s): '{preview(text)}'")
        try:
            translated = [self._translate_chunk(chunk, num_beams) for chunk in chunks]
        except Exception as e:
            logger.error(f"Error during translation of text '{preview(text)}': {e}", exc_info=True)
            raise TranslationError(f"Translation error: Hugging Face translation failed: {e}") from e

        result = "\n\n".join(translated)
        if not result.strip():
            raise TranslationError("Translation error: Translation failed or returned empty.")
        return result

    async def translate(self, text: str, effort: Optional[int] = None) -> str:
        # Generation blocks; keep it off the event loop
        return await asyncio.to_thread(self.translate_sync, text, effort)
