"""Enumerations for the transformation pack service."""

import re
from enum import Enum


class ImageCategory(str, Enum):
    """Category tag partitioning the prompt catalog and the archive layout."""
    UNDERWEIGHT = "Underweight"
    OVERWEIGHT = "Overweight"
    MUSCULAR = "Muscular"
    
    @property
    def slug(self) -> str:
        """Directory/file name stem used inside the archive."""
        return re.sub(r"\s+", "-", self.value)


class ProgressStage(str, Enum):
    """Checkpoint at which the progress sink is invoked."""
    STARTING = "starting"
    BATCH = "batch"
    SETTLED = "settled"
    COMPLETED = "completed"


class JobStatus(str, Enum):
    """Lifecycle of a job submitted through the HTTP surface."""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    CREDENTIAL_INVALID = "credential_invalid"
    FAILED = "failed"
    
    @property
    def is_finished(self) -> bool:
        return self not in (JobStatus.QUEUED, JobStatus.RUNNING)
