"""Single backend call for one prompt, with outcome classification."""

from typing import List, Optional

from ..providers.base import ImageBackend
from ..models.schemas import GeneratedImage, PromptSpec, ReferenceImage
from ..utils.logger import get_logger
from ..utils.errors import CredentialError

logger = get_logger(__name__)


class RequestExecutor:
    """Issues one generation call and classifies the outcome."""
    
    def __init__(self, backend: ImageBackend):
        self.backend = backend
    
    async def attempt(
        self,
        reference_images: List[ReferenceImage],
        prompt: PromptSpec,
    ) -> Optional[GeneratedImage]:
        """
        Run one generation attempt.
        
        Returns:
            GeneratedImage tagged with the prompt's category, or None when the
            backend answered without an image or failed transiently
            
        Raises:
            CredentialError: Credential invalid or missing (fatal)
        """
        try:
            result = await self.backend.generate(reference_images, prompt.text)
        except CredentialError:
            raise
        except Exception as e:
            logger.error(
                f"Generation failed for prompt: {type(e).__name__}",
                extra={
                    "category": prompt.category.value,
                    "prompt": prompt.text[:80],
                    "error": str(e),
                }
            )
            return None
        
        if result is None:
            return None
        
        data, mime_type = result
        return GeneratedImage(
            data=data,
            mime_type=mime_type,
            source_prompt=prompt.text,
            category=prompt.category,
        )
