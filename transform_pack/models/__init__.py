"""Data models and schemas for the transformation pack service."""

from .schemas import (
    PromptSpec,
    ReferenceImage,
    GeneratedImage,
    ProgressEvent,
    ProgressSink,
    ArchiveEntry,
    JobRecord,
    JobResponse,
)
from .enums import (
    ImageCategory,
    ProgressStage,
    JobStatus,
)

__all__ = [
    "PromptSpec",
    "ReferenceImage",
    "GeneratedImage",
    "ProgressEvent",
    "ProgressSink",
    "ArchiveEntry",
    "JobRecord",
    "JobResponse",
    "ImageCategory",
    "ProgressStage",
    "JobStatus",
]
