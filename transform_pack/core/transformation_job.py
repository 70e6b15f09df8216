"""Batch orchestrator for a transformation pack run."""

import asyncio
import math
import time
from typing import List, Optional

from .catalog import PromptCatalog
from .retry_policy import RetryPolicy
from .request_executor import RequestExecutor
from ..providers.base import ImageBackend
from ..models.schemas import (
    GeneratedImage,
    ProgressEvent,
    ProgressSink,
    PromptSpec,
    ReferenceImage,
)
from ..models.enums import ProgressStage
from ..utils.logger import get_logger
from ..utils.errors import CredentialError

logger = get_logger(__name__)

BATCH_SIZE = 5


class TransformationJob:
    """
    Runs every catalog prompt against the backend, one batch at a time.
    
    Prompts inside a batch run concurrently; a batch only starts once every
    call of the previous batch has settled, so at most ``batch_size``
    requests are ever in flight. A CredentialError aborts the job after the
    current batch settles; sibling calls already dispatched are not
    cancelled and their results are discarded.
    """
    
    def __init__(
        self,
        retry_policy: RetryPolicy,
        catalog: PromptCatalog,
        batch_size: int = BATCH_SIZE,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.retry_policy = retry_policy
        self.catalog = catalog
        self.batch_size = batch_size
    
    @classmethod
    def from_config(cls, backend: ImageBackend, config, catalog: Optional[PromptCatalog] = None, **retry_kwargs):
        """Wire executor, retry policy and catalog from a Config."""
        retry_policy = RetryPolicy(
            RequestExecutor(backend),
            max_attempts=config.max_attempts,
            delay_seconds=config.retry_delay_seconds,
            **retry_kwargs,
        )
        return cls(
            retry_policy=retry_policy,
            catalog=catalog or PromptCatalog.from_config(config),
            batch_size=config.batch_size,
        )
    
    def batches(self) -> List[List[PromptSpec]]:
        """Consecutive slices of the catalog; the last may be shorter."""
        prompts = list(self.catalog)
        return [
            prompts[i:i + self.batch_size]
            for i in range(0, len(prompts), self.batch_size)
        ]
    
    async def run(
        self,
        reference_images: List[ReferenceImage],
        progress_sink: Optional[ProgressSink] = None,
    ) -> List[GeneratedImage]:
        """
        Generate one image per catalog prompt.
        
        Returns:
            Produced images in arrival order (possibly empty)
            
        Raises:
            CredentialError: First credential failure, after its batch settles
        """
        start_time = time.time()
        total = len(self.catalog)
        total_batches = math.ceil(total / self.batch_size)
        results: List[GeneratedImage] = []
        
        def emit(stage: ProgressStage, message: str, batch: Optional[int] = None):
            event = ProgressEvent(
                stage=stage,
                message=message,
                completed=len(results),
                total=total,
                batch=batch,
                total_batches=total_batches,
            )
            logger.info(message, extra={"stage": stage.value, "completed": len(results), "total": total})
            if progress_sink is not None:
                progress_sink(event)
        
        emit(ProgressStage.STARTING, "Starting generation...")
        
        for number, batch in enumerate(self.batches(), start=1):
            emit(ProgressStage.BATCH, f"Processing batch {number} of {total_batches}...", batch=number)
            
            try:
                await self._run_batch(reference_images, batch, number, results, emit)
            except CredentialError as e:
                logger.error(
                    "Credential rejected, aborting job",
                    extra={
                        "batch": number,
                        "total_batches": total_batches,
                        "discarded": len(results),
                        "error": str(e),
                    }
                )
                raise
        
        emit(ProgressStage.COMPLETED, f"Done! Generated {len(results)} images.")
        
        logger.info(
            "Transformation job complete",
            extra={
                "produced": len(results),
                "total": total,
                "processing_time_seconds": time.time() - start_time,
            }
        )
        
        return results
    
    async def _run_batch(
        self,
        reference_images: List[ReferenceImage],
        batch: List[PromptSpec],
        number: int,
        results: List[GeneratedImage],
        emit,
    ):
        aborted = False
        
        async def settle(prompt: PromptSpec) -> Optional[GeneratedImage]:
            nonlocal aborted
            # Calls not yet dispatched when the abort lands are skipped
            if aborted:
                return None
            try:
                image = await self.retry_policy.attempt_with_retry(reference_images, prompt)
            except CredentialError:
                aborted = True
                raise
            
            # Single event loop: appends happen in completion order without locking
            if not aborted:
                if image is not None:
                    results.append(image)
                emit(
                    ProgressStage.SETTLED,
                    f"Generating images... ({len(results)}/{len(self.catalog)})",
                    batch=number,
                )
            return image
        
        outcomes = await asyncio.gather(
            *(settle(prompt) for prompt in batch),
            return_exceptions=True,
        )
        
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        for error in errors:
            if isinstance(error, CredentialError):
                raise error
        if errors:
            raise errors[0]
