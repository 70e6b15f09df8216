"""Pydantic schemas for data validation."""

import base64
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import ImageCategory, JobStatus, ProgressStage


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PromptSpec(BaseModel):
    """One catalog entry: prompt text plus the category it produces."""
    model_config = ConfigDict(frozen=True)
    
    text: str = Field(..., min_length=1)
    category: ImageCategory


class ReferenceImage(BaseModel):
    """User-supplied input image, read-only for the whole job."""
    model_config = ConfigDict(frozen=True)
    
    data: bytes
    mime_type: str = "image/png"
    
    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")


class GeneratedImage(BaseModel):
    """Result of one successful backend call."""
    model_config = ConfigDict(frozen=True)
    
    data: str  # base64 payload as returned by the backend
    mime_type: str
    source_prompt: str
    category: ImageCategory
    created_at: datetime = Field(default_factory=_utcnow)


class ProgressEvent(BaseModel):
    """Snapshot handed to the progress sink at every checkpoint."""
    stage: ProgressStage
    message: str
    completed: int = 0
    total: int = 0
    batch: Optional[int] = None
    total_batches: Optional[int] = None


ProgressSink = Callable[[ProgressEvent], None]


class ArchiveEntry(BaseModel):
    """Single file inside the downloadable archive."""
    path: str
    data: bytes


class GeneratedImageInfo(BaseModel):
    """Image metadata exposed over HTTP (payload served separately)."""
    index: int
    category: ImageCategory
    source_prompt: str
    mime_type: str


class JobRecord(BaseModel):
    """State of a job submitted through the HTTP surface."""
    job_id: str
    status: JobStatus = JobStatus.QUEUED
    message: str = ""
    completed: int = 0
    total: int = 0
    error: Optional[str] = None
    results: List[GeneratedImage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    
    def apply(self, event: ProgressEvent):
        """Fold a progress event into the record."""
        self.message = event.message
        self.completed = event.completed
        self.total = event.total


class JobResponse(BaseModel):
    """Public view of a JobRecord."""
    job_id: str
    status: JobStatus
    message: str
    completed: int
    total: int
    error: Optional[str] = None
    images: List[GeneratedImageInfo] = Field(default_factory=list)
    
    @classmethod
    def from_record(cls, record: JobRecord) -> "JobResponse":
        return cls(
            job_id=record.job_id,
            status=record.status,
            message=record.message,
            completed=record.completed,
            total=record.total,
            error=record.error,
            images=[
                GeneratedImageInfo(
                    index=i,
                    category=image.category,
                    source_prompt=image.source_prompt,
                    mime_type=image.mime_type,
                )
                for i, image in enumerate(record.results)
            ],
        )
