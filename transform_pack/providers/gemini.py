"""Gemini generateContent client for image-to-image generation."""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from .base import BaseProvider
from ..models.schemas import ReferenceImage
from ..utils.logger import get_logger
from ..utils.errors import ProviderError, CredentialError, RateLimitError

logger = get_logger(__name__)

PROVIDER = "gemini"

# Error reasons/statuses Google returns for a bad or missing key
CREDENTIAL_REASONS = {"API_KEY_INVALID", "API_KEY_EXPIRED", "API_KEY_SERVICE_BLOCKED"}
CREDENTIAL_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}


class GeminiClient(BaseProvider):
    """Client for the Gemini image model (reference images + text -> image)."""
    
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash-image-preview",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )
        self.model = model
    
    @classmethod
    def from_config(cls, api_key: str, config, **kwargs) -> "GeminiClient":
        return cls(
            api_key=api_key,
            model=config.gemini_model,
            base_url=config.gemini_base_url,
            timeout=config.timeout_gemini_seconds,
            **kwargs,
        )
    
    def _get_default_headers(self) -> dict:
        return {
            "x-goog-api-key": self.api_key or "",
            "Content-Type": "application/json",
        }
    
    def _build_payload(
        self,
        reference_images: List[ReferenceImage],
        prompt_text: str,
    ) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [
            {
                "inline_data": {
                    "mime_type": image.mime_type,
                    "data": image.to_base64(),
                }
            }
            for image in reference_images
        ]
        parts.append({"text": prompt_text})
        
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "responseModalities": ["IMAGE", "TEXT"],
            },
        }
    
    async def generate(
        self,
        reference_images: List[ReferenceImage],
        prompt_text: str,
    ) -> Optional[Tuple[str, str]]:
        """
        Generate one image from the reference images and a prompt.
        
        Returns:
            Tuple of (base64_data, mime_type), or None when the response
            carries no image part
            
        Raises:
            CredentialError: Key missing or rejected
            RateLimitError: HTTP 429
            ProviderError: Any other HTTP error
            httpx.RequestError: Transport failure or timeout
        """
        if not self.api_key:
            raise CredentialError(PROVIDER, "API key missing")
        
        self._ensure_client()
        
        response = await self.client.post(
            f"{self.base_url}/models/{self.model}:generateContent",
            json=self._build_payload(reference_images, prompt_text),
        )
        
        self._handle_response_errors(response)
        
        image = self._extract_image(response.json())
        
        if image is None:
            logger.info(
                "Response carried no image data",
                extra={"model": self.model, "prompt": prompt_text[:80]}
            )
        
        return image
    
    @staticmethod
    def _extract_image(data: Dict[str, Any]) -> Optional[Tuple[str, str]]:
        """First inline image of the first candidate, if any."""
        candidates = data.get("candidates") or []
        if not candidates:
            return None
        
        content = candidates[0].get("content") or {}
        for part in content.get("parts") or []:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return inline["data"], mime_type
        
        return None
    
    def _handle_response_errors(self, response: httpx.Response):
        """Handle HTTP response errors."""
        if response.status_code < 400:
            return
        
        try:
            body = response.json()
        except ValueError:
            body = {}
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            error = {}
        
        message = error.get("message") or response.text
        reasons = {
            detail.get("reason")
            for detail in error.get("details") or []
            if isinstance(detail, dict)
        }
        
        if (
            response.status_code in (401, 403)
            or reasons & CREDENTIAL_REASONS
            or error.get("status") in CREDENTIAL_STATUSES
        ):
            logger.error(
                "Gemini rejected the API key",
                extra={"status": response.status_code, "reasons": sorted(r for r in reasons if r)}
            )
            raise CredentialError(PROVIDER, message, response.status_code)
        
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                PROVIDER,
                int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        
        logger.error(
            f"Gemini request failed: {response.status_code}",
            extra={"status": response.status_code, "response": response.text[:500]}
        )
        raise ProviderError(PROVIDER, message, response.status_code)
