"""Prompt catalog: the fixed, ordered list of prompts a job runs through."""

from pathlib import Path
from typing import Iterable, Iterator, List, Union

import yaml
from pydantic import ValidationError

from ..models.schemas import PromptSpec
from ..models.enums import ImageCategory
from ..utils.errors import ConfigurationError


class PromptCatalog:
    """Immutable ordered sequence of PromptSpec."""
    
    def __init__(self, prompts: Iterable[PromptSpec]):
        self._prompts = tuple(prompts)
        if not self._prompts:
            raise ConfigurationError("Prompt catalog is empty")
    
    def __iter__(self) -> Iterator[PromptSpec]:
        return iter(self._prompts)
    
    def __len__(self) -> int:
        return len(self._prompts)
    
    def __getitem__(self, index):
        return self._prompts[index]
    
    @property
    def categories(self) -> List[ImageCategory]:
        """Categories in first-appearance order."""
        seen: List[ImageCategory] = []
        for prompt in self._prompts:
            if prompt.category not in seen:
                seen.append(prompt.category)
        return seen
    
    @classmethod
    def from_config(cls, config) -> "PromptCatalog":
        return cls(config.prompt_catalog)


def load_prompt_catalog(path: Union[str, Path]) -> PromptCatalog:
    """
    Read a catalog from a YAML file holding a ``prompt_catalog`` list.
    
    Raises:
        ConfigurationError: If the file is missing or malformed
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Prompt catalog not found: {path}")
    
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    
    entries = data.get("prompt_catalog") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ConfigurationError(f"{path} has no prompt_catalog list")
    
    try:
        return PromptCatalog(PromptSpec(**entry) for entry in entries)
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid prompt in {path}: {e}") from e
