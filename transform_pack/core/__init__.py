"""Core business logic components."""

from .catalog import PromptCatalog, load_prompt_catalog
from .request_executor import RequestExecutor
from .retry_policy import RetryPolicy
from .transformation_job import TransformationJob
from .archive_builder import ArchiveBuilder, archive_entries
from .job_registry import JobRegistry

__all__ = [
    "PromptCatalog",
    "load_prompt_catalog",
    "RequestExecutor",
    "RetryPolicy",
    "TransformationJob",
    "ArchiveBuilder",
    "archive_entries",
    "JobRegistry",
]
