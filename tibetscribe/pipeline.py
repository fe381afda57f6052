"""Orchestrates the transcription -> formatting -> translation pipeline."""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .exceptions import (
    EmptyInputError,
    FormattingError,
    NoImagesError,
    TranscriptionError,
    TranslationError,
)
from .formatter import TranscriptFormatter
from .models import ImageStatus, ImageTask, PipelineRun, Stage
from .transcriber import Transcriber
from .translator import Translator
from .utils import preview, scale_quality_budget

logger = logging.getLogger(__name__)

ALL_TRANSCRIPTIONS_FAILED = "all transcriptions failed"

_UNSET = object()

class PipelineOrchestrator:
    """
    Owns the live PipelineRun and drives it through its stages.

    Every user action that can invalidate in-flight work bumps
    `run.job_version`. Each asynchronous continuation captures the version it
    was issued under and writes to the run only if that version is still live;
    otherwise its result is dropped.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        formatter: TranscriptFormatter,
        translator: Translator,
        quality_level: Optional[float] = None,
        on_image_settled: Optional[Callable[[ImageTask], None]] = None,
    ):
        """
        Initializes the PipelineOrchestrator.

        Args:
            transcriber: Per-image transcription service.
            formatter: Service merging page transcripts into the canonical text.
            translator: Translation service.
            quality_level: Default quality level in [0, 100], or None for the
                           translator's own default.
            on_image_settled: Called once per image when its transcription
                              succeeds or fails within the live run.
        """
        scale_quality_budget(quality_level) # Validate early
        self.transcriber = transcriber
        self.formatter = formatter
        self.translator = translator
        self.quality_level = quality_level
        self.on_image_settled = on_image_settled
        self.run = PipelineRun()
        self.images: List[ImageTask] = []
        self._invalidation_listeners: List[Callable[[], None]] = []

    # --- read access ---

    @property
    def stage(self) -> Stage:
        return self.run.stage

    @property
    def canonical_text(self) -> Optional[str]:
        return self.run.canonical_text

    @property
    def translation(self) -> Optional[str]:
        return self.run.translation

    @property
    def error_message(self) -> Optional[str]:
        return self.run.error_message

    @property
    def job_version(self) -> int:
        return self.run.job_version

    def subscribe_invalidation(self, callback: Callable[[], None]) -> None:
        """Registers a callback run whenever selection state must be cleared."""
        self._invalidation_listeners.append(callback)

    # --- image management ---

    def add_images(self, tasks: List[ImageTask]) -> None:
        known = {task.id for task in self.images}
        for task in tasks:
            if task.id in known:
                logger.info(f"Image {task.source_ref} already added; skipping.")
                continue
            known.add(task.id)
            self.images.append(task)

    def remove_image(self, task_id: str) -> bool:
        for i, task in enumerate(self.images):
            if task.id == task_id:
                del self.images[i]
                logger.info(f"Removed image {task.source_ref}")
                return True
        return False

    # --- versioning helpers ---

    def _bump(self, reason: str) -> int:
        self.run.job_version += 1
        logger.debug(f"Job version -> {self.run.job_version} ({reason})")
        return self.run.job_version

    def _is_current(self, version: int) -> bool:
        return version == self.run.job_version

    def _release_images(self) -> None:
        # Transcriptions of a superseded run never report back
        for image in self.images:
            if image.status == ImageStatus.TRANSCRIBING:
                image.status = ImageStatus.PENDING

    def _invalidate_selection(self) -> None:
        for callback in self._invalidation_listeners:
            callback()

    def _begin_run(self, stage: Stage) -> None:
        self.run.stage = stage
        self.run.canonical_text = None
        self.run.translation = None
        self.run.error_message = None
        self.run.editing = False
        self.run.edit_buffer = None
        self._invalidate_selection()

    def _fail(self, message: str) -> None:
        self.run.stage = Stage.ERROR
        self.run.error_message = message
        logger.error(f"Pipeline run {self.run.job_version} failed: {message}")

    # --- pipeline entry points ---

    async def start_from_images(self, images: Optional[List[ImageTask]] = None) -> None:
        """
        Transcribes every image concurrently, merges the successes and translates.

        Args:
            images: Images for this run. Defaults to the images added so far;
                    when given, they replace them.

        Raises:
            NoImagesError: If there are no images. No stage is entered.
        """
        images = list(self.images if images is None else images)
        if not images:
            raise NoImagesError("Please select at least one image first.")

        version = self._bump("start from images")
        self._release_images()
        self.images = list(images)
        self._begin_run(Stage.TRANSCRIBING_IMAGES)
        for image in images:
            image.mark_transcribing()

        start_time = time.time()
        logger.info(f"Step 1: Transcribing {len(images)} image(s)...")
        outcomes = await asyncio.gather(
            *(self._transcribe_one(version, image) for image in images),
            return_exceptions=True,
        )
        if not self._is_current(version):
            logger.debug(f"Discarding transcription results of superseded run {version}.")
            return

        for image, outcome in zip(images, outcomes):
            if isinstance(outcome, BaseException):
                # Not a TranscriptionError: still only this image's failure
                logger.error(f"Unexpected error transcribing {image.source_ref}: {outcome}", exc_info=outcome)
                image.status = ImageStatus.FAILED
                image.error_message = f"Transcription error: {outcome}"
                self._notify_settled(image)

        pages = [(image, image.transcript) for image in images if image.status == ImageStatus.SUCCEEDED]
        failed = len(images) - len(pages)
        logger.info(f"Transcription settled: {len(pages)} succeeded, {failed} failed ({time.time() - start_time:.2f}s).")
        if not pages:
            self._fail(ALL_TRANSCRIPTIONS_FAILED)
            return

        self.run.stage = Stage.FORMATTING
        logger.info(f"Step 2: Formatting {len(pages)} transcript(s)...")
        try:
            canonical_text = await self.formatter.format(pages)
        except FormattingError as e:
            if self._is_current(version):
                self._fail(str(e))
            return
        except Exception as e:
            if self._is_current(version):
                logger.error(f"Unexpected error while formatting: {e}", exc_info=True)
                self._fail(f"Formatting error: {e}")
            return
        if not self._is_current(version):
            logger.debug(f"Discarding formatting result of superseded run {version}.")
            return

        self.run.canonical_text = canonical_text
        self.run.stage = Stage.TRANSLATING
        logger.info("Step 3: Translating canonical text...")
        await self._translate(version, canonical_text, scale_quality_budget(self.quality_level))

    async def _transcribe_one(self, version: int, image: ImageTask) -> None:
        try:
            transcript = await self.transcriber.transcribe(image)
        except TranscriptionError as e:
            if self._is_current(version):
                image.status = ImageStatus.FAILED
                image.error_message = str(e)
                logger.warning(f"Transcription failed for {image.source_ref}: {e}")
                self._notify_settled(image)
            return
        if self._is_current(version):
            image.status = ImageStatus.SUCCEEDED
            image.transcript = transcript
            self._notify_settled(image)

    def _notify_settled(self, image: ImageTask) -> None:
        if self.on_image_settled is not None:
            self.on_image_settled(image)

    async def start_from_text(self, text: str) -> None:
        """
        Uses manually entered text as the canonical text and translates it.

        Raises:
            EmptyInputError: If the text is blank. No stage is entered.
        """
        if not text or not text.strip():
            raise EmptyInputError("Please enter some Tibetan text first.")
        effort = scale_quality_budget(self.quality_level)
        version = self._bump("start from text")
        self._release_images()
        self._begin_run(Stage.TRANSLATING)
        self.run.canonical_text = text
        logger.info(f"Translating manually entered text: '{preview(text)}'")
        await self._translate(version, text, effort)

    async def retranslate(self, text: str, quality_level=_UNSET) -> None:
        """
        Translates `text` as the new canonical text under a fresh job version.

        Args:
            text: The canonical text to translate.
            quality_level: Level in [0, 100] or None; defaults to the
                           orchestrator's configured level.

        Raises:
            EmptyInputError: If the text is blank.
            ValueError: If the quality level is out of range.
        """
        if not text or not text.strip():
            raise EmptyInputError("Cannot translate empty text.")
        level = self.quality_level if quality_level is _UNSET else quality_level
        effort = scale_quality_budget(level)

        version = self._bump("retranslate")
        self._release_images()
        if text != self.run.canonical_text:
            self._invalidate_selection()
        self.run.canonical_text = text
        self.run.translation = None
        self.run.error_message = None
        self.run.stage = Stage.TRANSLATING
        logger.info(f"Re-translating canonical text (effort={effort}).")
        await self._translate(version, text, effort)

    async def _translate(self, version: int, text: str, effort: Optional[int]) -> None:
        try:
            translation = await self.translator.translate(text, effort)
        except TranslationError as e:
            if not self._is_current(version):
                logger.debug(f"Ignoring translation failure of superseded job {version}: {e}")
                return
            self._fail(str(e))
            return
        except Exception as e:
            if not self._is_current(version):
                logger.debug(f"Ignoring translation failure of superseded job {version}: {e}")
                return
            logger.error(f"Unexpected error while translating: {e}", exc_info=True)
            self._fail(f"Translation error: {e}")
            return
        if not self._is_current(version):
            logger.debug(f"Discarding stale translation of job {version} (live job is {self.run.job_version}).")
            return
        self.run.translation = translation
        self.run.stage = Stage.SUCCESS
        logger.info(f"Pipeline run {version} completed successfully.")

    # --- editing ---

    def enter_edit(self) -> None:
        """
        Switches to edit mode: invalidates in-flight work, clears the
        translation and selection, and copies the canonical text into the
        edit buffer.
        """
        self._bump("enter edit")
        self.run.translation = None
        self.run.error_message = None
        self.run.stage = Stage.IDLE
        self.run.editing = True
        self.run.edit_buffer = self.run.canonical_text or ""
        self._release_images()
        self._invalidate_selection()
        logger.info("Entered edit mode.")

    def update_edit_buffer(self, text: str) -> None:
        if not self.run.editing:
            raise RuntimeError("Not in edit mode.")
        self.run.edit_buffer = text

    async def commit_edit(self, new_text: Optional[str] = None) -> None:
        """
        Leaves edit mode and re-translates the edited text.

        Raises:
            RuntimeError: If not in edit mode.
            EmptyInputError: If the edited text is blank; edit mode is kept.
        """
        if not self.run.editing:
            raise RuntimeError("Not in edit mode.")
        text = self.run.edit_buffer if new_text is None else new_text
        if not text or not text.strip():
            raise EmptyInputError("Edited text cannot be empty.")
        self.run.editing = False
        self.run.edit_buffer = None
        logger.info("Committing edited text.")
        await self.retranslate(text)

    def cancel_edit(self) -> None:
        """Leaves edit mode keeping the previous canonical text."""
        self.run.editing = False
        self.run.edit_buffer = None

    def reset(self) -> None:
        """Drops all images, text and results and returns to IDLE."""
        version = self._bump("reset")
        self.images = []
        self.run = PipelineRun(job_version=version)
        self._invalidate_selection()
        logger.info("Pipeline reset.")
