from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple, Union

import pytest

from tibetscribe.exceptions import (
    AlternatesError,
    ExplanationError,
    FormattingError,
    TranscriptionError,
    TranslationError,
)
from tibetscribe.explainer import SelectionExplainer
from tibetscribe.formatter import TranscriptFormatter
from tibetscribe.models import ImageTask
from tibetscribe.transcriber import Transcriber
from tibetscribe.translator import Translator

Outcome = Union[str, Exception]


class FakeTranscriber(Transcriber):
    def __init__(self, outcomes: Dict[str, Outcome]):
        self.outcomes = outcomes
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []

    async def transcribe(self, image: ImageTask) -> str:
        self.calls.append(image.id)
        gate = self.gates.get(image.id)
        if gate is not None:
            await gate.wait()
        outcome = self.outcomes[image.id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeFormatter(TranscriptFormatter):
    """Joins the page transcripts; `error` is raised as a FormattingError, or as is when an exception."""

    def __init__(self, error: Optional[Outcome] = None):
        self.error = error
        self.calls: List[List[Tuple[str, str]]] = []

    async def format(self, pages: List[Tuple[ImageTask, str]]) -> str:
        self.calls.append([(image.id, transcript) for image, transcript in pages])
        if isinstance(self.error, Exception):
            raise self.error
        if self.error:
            raise FormattingError(self.error)
        return "\n\n".join(transcript for _, transcript in pages)


class FakeTranslator(Translator):
    """Translates to "EN:<text>"; each call can be held back by a gate."""

    def __init__(self, error: Optional[Outcome] = None):
        self.error = error
        self.calls: List[Tuple[str, Optional[int]]] = []
        self.gates: List[asyncio.Event] = []
        self.hold = False

    async def translate(self, text: str, effort: Optional[int] = None) -> str:
        self.calls.append((text, effort))
        if self.hold:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()
        if isinstance(self.error, Exception):
            raise self.error
        if self.error:
            raise TranslationError(self.error)
        return f"EN:{text}"


class FakeExplainer(SelectionExplainer):
    def __init__(self):
        self.explain_error: Optional[str] = None
        self.alternates_error: Optional[str] = None
        self.calls: List[Tuple[str, str, str, str]] = []
        self.gates: List[asyncio.Event] = []
        self.hold = False

    async def _wait(self) -> None:
        if self.hold:
            gate = asyncio.Event()
            self.gates.append(gate)
            await gate.wait()

    async def explain(self, selected_text: str, canonical_text: str, translation: str) -> str:
        self.calls.append(("explain", selected_text, canonical_text, translation))
        await self._wait()
        if self.explain_error:
            raise ExplanationError(self.explain_error)
        return f"meaning of {selected_text}"

    async def alternates(self, selected_text: str, canonical_text: str, translation: str) -> str:
        self.calls.append(("alternates", selected_text, canonical_text, translation))
        await self._wait()
        if self.alternates_error:
            raise AlternatesError(self.alternates_error)
        return f"- other {selected_text}"


async def wait_until(predicate, limit: int = 100) -> None:
    """Yields to the event loop until `predicate()` holds."""
    for _ in range(limit):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def make_image(task_id: str) -> ImageTask:
    return ImageTask(id=task_id, source_ref=f"{task_id}.png", data=b"\x89PNG", mime_type="image/png")


@pytest.fixture
def images() -> List[ImageTask]:
    return [make_image("p1"), make_image("p2"), make_image("p3")]


@pytest.fixture
def restore_logging():
    """Puts back the root handlers replaced by setup_logging()."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
