"""In-memory registry of jobs submitted through the HTTP surface."""

import asyncio
import time
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Set

from ..models.schemas import GeneratedImage, JobRecord, ProgressSink
from ..models.enums import JobStatus
from ..utils.logger import get_logger
from ..utils.errors import CredentialError, JobNotFoundError

logger = get_logger(__name__)

JobRunner = Callable[[ProgressSink], Awaitable[List[GeneratedImage]]]

# Job ran to the end but produced nothing
NOTHING_PRODUCED = "No images could be generated. Try again with another reference image."


class JobRegistry:
    """Tracks job records and their background tasks, with TTL cleanup."""
    
    def __init__(self, ttl_seconds: int = 3600):
        self.ttl_seconds = ttl_seconds
        self._jobs: Dict[str, JobRecord] = {}
        self._finished_at: Dict[str, float] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
    
    def __len__(self) -> int:
        return len(self._jobs)
    
    async def submit(self, runner: JobRunner, total: int = 0) -> JobRecord:
        """Register a job and start ``runner`` as a background task."""
        await self.cleanup_expired()
        
        record = JobRecord(job_id=uuid.uuid4().hex, total=total)
        async with self._lock:
            self._jobs[record.job_id] = record
        
        task = asyncio.create_task(self._execute(record, runner), name=record.job_id)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        
        logger.info("Job submitted", extra={"job_id": record.job_id, "total": total})
        return record
    
    def get(self, job_id: str) -> JobRecord:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise JobNotFoundError(f"Job {job_id} not found") from None
    
    async def wait(self, job_id: str, timeout: Optional[float] = None) -> JobRecord:
        """Wait until the job's background task has finished."""
        record = self.get(job_id)
        pending = [t for t in self._tasks if t.get_name() == job_id]
        if pending:
            await asyncio.wait(pending, timeout=timeout)
        return record
    
    async def _execute(self, record: JobRecord, runner: JobRunner):
        record.status = JobStatus.RUNNING
        
        try:
            results = await runner(record.apply)
        except CredentialError as e:
            record.status = JobStatus.CREDENTIAL_INVALID
            record.error = str(e)
            logger.warning("Job aborted: credential rejected", extra={"job_id": record.job_id})
        except Exception as e:
            record.status = JobStatus.FAILED
            record.error = f"{type(e).__name__}: {e}"
            logger.error(
                "Job failed unexpectedly",
                extra={"job_id": record.job_id, "error": str(e)},
                exc_info=True,
            )
        else:
            record.results = list(results)
            record.status = JobStatus.COMPLETED
            if not record.results:
                record.error = NOTHING_PRODUCED
            logger.info(
                "Job completed",
                extra={"job_id": record.job_id, "produced": len(record.results)}
            )
        finally:
            record.finished_at = datetime.now(timezone.utc)
            self._finished_at[record.job_id] = time.monotonic()
    
    async def cleanup_expired(self) -> int:
        """Drop finished jobs older than the TTL. Returns how many were removed."""
        async with self._lock:
            now = time.monotonic()
            expired = [
                job_id for job_id, finished in self._finished_at.items()
                if now - finished > self.ttl_seconds
            ]
            for job_id in expired:
                self._jobs.pop(job_id, None)
                self._finished_at.pop(job_id, None)
        
        if expired:
            logger.info(
                f"Cleanup complete: removed {len(expired)} expired jobs",
                extra={"cleaned": len(expired), "remaining": len(self._jobs)}
            )
        return len(expired)
