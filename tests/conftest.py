"""Pytest configuration and shared fixtures."""

import asyncio
import base64
import io
from collections import defaultdict
from typing import Dict, List, Optional

import pytest
from PIL import Image

from transform_pack.core import PromptCatalog, RequestExecutor, RetryPolicy
from transform_pack.models import ImageCategory, PromptSpec, ReferenceImage
from transform_pack.providers import ImageBackend
from transform_pack.utils.config import Config
from transform_pack.utils.errors import CredentialError


def make_payload(label: str) -> str:
    """Base64 payload standing in for a generated image."""
    return base64.b64encode(f"image:{label}".encode("utf-8")).decode("utf-8")


OK = object()


class FakeBackend(ImageBackend):
    """
    Scriptable backend.
    
    ``script`` maps prompt text to a list of per-attempt outcomes; prompts not
    in the script use ``default``. An outcome is OK (image), None (no image
    data) or an exception instance (raised). Credential errors are raised
    before suspending, everything else after ``delays[prompt]`` seconds.
    """
    
    def __init__(
        self,
        default=OK,
        script: Optional[Dict[str, list]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.default = default
        self.script = script or {}
        self.delays = delays or {}
        self.calls: List[str] = []
        self.events: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._attempts: Dict[str, int] = defaultdict(int)
        self.entered = False
        self.exited = False
    
    async def __aenter__(self):
        self.entered = True
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True
    
    def _outcome(self, prompt_text: str):
        attempt = self._attempts[prompt_text]
        self._attempts[prompt_text] += 1
        outcomes = self.script.get(prompt_text)
        if outcomes is None:
            return self.default
        return outcomes[min(attempt, len(outcomes) - 1)]
    
    async def generate(self, reference_images, prompt_text):
        self.calls.append(prompt_text)
        outcome = self._outcome(prompt_text)
        if isinstance(outcome, CredentialError):
            raise outcome
        
        self.events.append(("start", prompt_text))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(prompt_text, 0))
        finally:
            self.in_flight -= 1
            self.events.append(("end", prompt_text))
        
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is OK:
            return make_payload(prompt_text), "image/png"
        return outcome


class RecordingSink:
    """Progress sink that keeps every event."""
    
    def __init__(self):
        self.events = []
    
    def __call__(self, event):
        self.events.append(event)
    
    @property
    def counts(self) -> List[int]:
        return [e.completed for e in self.events]


class RecordingSleep:
    """Async sleep replacement that records requested delays."""
    
    def __init__(self):
        self.delays: List[float] = []
    
    async def __call__(self, seconds: float):
        self.delays.append(seconds)


def build_prompts(per_category: int = 5) -> List[PromptSpec]:
    return [
        PromptSpec(text=f"{category.value} prompt {i}", category=category)
        for category in ImageCategory
        for i in range(1, per_category + 1)
    ]


@pytest.fixture
def prompts() -> List[PromptSpec]:
    """15 prompts, 5 per category, grouped by category."""
    return build_prompts()


@pytest.fixture
def catalog(prompts) -> PromptCatalog:
    return PromptCatalog(prompts)


@pytest.fixture
def reference_images() -> List[ReferenceImage]:
    return [ReferenceImage(data=b"reference-bytes", mime_type="image/jpeg")]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_policy(sleep):
    """Build a RetryPolicy around a backend with recorded sleeps."""
    def factory(backend, max_attempts=3, delay_seconds=2.0):
        return RetryPolicy(
            RequestExecutor(backend),
            max_attempts=max_attempts,
            delay_seconds=delay_seconds,
            sleep=sleep,
        )
    return factory


@pytest.fixture
def test_config(prompts) -> Config:
    return Config(
        prompt_catalog=prompts,
        retry_delay_seconds=0.0,
        archive_filename="test-pack.zip",
    )


@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()
