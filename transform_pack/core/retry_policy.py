"""Bounded fixed-delay retry around the RequestExecutor."""

import asyncio
from typing import Awaitable, Callable, List, Optional

from .request_executor import RequestExecutor
from ..models.schemas import GeneratedImage, PromptSpec, ReferenceImage
from ..utils.logger import get_logger
from ..utils.errors import CredentialError

logger = get_logger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0


class RetryPolicy:
    """
    Retry a prompt up to ``max_attempts`` times with a fixed delay.
    
    A CredentialError is never retried; it propagates on first sight.
    Exhaustion is not an error: the prompt is dropped and None returned.
    """
    
    def __init__(
        self,
        executor: RequestExecutor,
        max_attempts: int = MAX_ATTEMPTS,
        delay_seconds: float = RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.executor = executor
        self.max_attempts = max_attempts
        self.delay_seconds = delay_seconds
        self._sleep = sleep
    
    async def attempt_with_retry(
        self,
        reference_images: List[ReferenceImage],
        prompt: PromptSpec,
    ) -> Optional[GeneratedImage]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await self.executor.attempt(reference_images, prompt)
            except CredentialError:
                logger.error(
                    "Credential rejected, not retrying",
                    extra={"category": prompt.category.value, "attempt": attempt}
                )
                raise
            
            if result is not None:
                return result
            
            if attempt < self.max_attempts:
                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} produced no image, retrying...",
                    extra={
                        "category": prompt.category.value,
                        "prompt": prompt.text[:80],
                        "attempt": attempt,
                        "delay_seconds": self.delay_seconds,
                    }
                )
                await self._sleep(self.delay_seconds)
        
        logger.warning(
            f"No image after {self.max_attempts} attempts, dropping prompt",
            extra={
                "category": prompt.category.value,
                "prompt": prompt.text[:80],
                "attempts": self.max_attempts,
            }
        )
        return None
