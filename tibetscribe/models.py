"""Data models for TibetScribe."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ImageStatus(str, Enum):
    PENDING = "pending"
    TRANSCRIBING = "transcribing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Stage(str, Enum):
    IDLE = "idle"
    TRANSCRIBING_IMAGES = "transcribing_images"
    FORMATTING = "formatting"
    TRANSLATING = "translating"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class ImageTask:
    """One uploaded page image and the state of its transcription."""
    id: str
    source_ref: str
    data: bytes = field(repr=False, default=b"")
    mime_type: str = "image/png"
    status: ImageStatus = ImageStatus.PENDING
    transcript: Optional[str] = None
    error_message: Optional[str] = None

    def mark_transcribing(self) -> None:
        self.status = ImageStatus.TRANSCRIBING
        self.transcript = None
        self.error_message = None


@dataclass
class PipelineRun:
    """
    The single live run owned by the pipeline orchestrator.

    `job_version` only ever increases; asynchronous continuations compare the
    version they captured at call-issue time against it before writing.
    """
    job_version: int = 0
    stage: Stage = Stage.IDLE
    canonical_text: Optional[str] = None
    translation: Optional[str] = None
    error_message: Optional[str] = None
    editing: bool = False
    edit_buffer: Optional[str] = None


@dataclass(frozen=True)
class SelectionSpan:
    """A `[start, start + length)` range of the canonical text."""
    start: int
    length: int

    def __post_init__(self):
        if self.start < 0:
            raise ValueError(f"Selection start must be >= 0, got {self.start}")
        if self.length <= 0:
            raise ValueError(f"Selection length must be > 0, got {self.length}")

    @property
    def end(self) -> int:
        return self.start + self.length

    def fits(self, text: str) -> bool:
        return self.end <= len(text)

    def slice_of(self, text: str) -> str:
        return text[self.start:self.end]


@dataclass
class ActionState:
    """Loading / result / error tri-state of one selection action."""
    loading: bool = False
    result: Optional[str] = None
    error: Optional[str] = None

    def clear(self) -> None:
        self.loading = False
        self.result = None
        self.error = None
