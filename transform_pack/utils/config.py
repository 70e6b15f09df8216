"""Configuration management for the transformation pack service."""

import os
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from dotenv import load_dotenv

from ..models.schemas import PromptSpec
from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

# Load environment variables
load_dotenv()

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


class Config(BaseModel):
    """Main application configuration."""
    model_config = ConfigDict(populate_by_name=True)
    
    # Application Settings
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    
    # Backend
    gemini_model: str = Field(default="gemini-2.5-flash-image-preview", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL",
    )
    timeout_gemini_seconds: float = Field(default=120.0, gt=0, alias="TIMEOUT_GEMINI_SECONDS")
    
    # Job behaviour
    batch_size: int = Field(default=5, ge=1, alias="BATCH_SIZE")
    max_attempts: int = Field(default=3, ge=1, alias="MAX_ATTEMPTS")
    retry_delay_seconds: float = Field(default=2.0, ge=0, alias="RETRY_DELAY_SECONDS")
    
    # HTTP surface
    max_reference_images: int = Field(default=6, ge=1, alias="MAX_REFERENCE_IMAGES")
    archive_filename: str = Field(default="transformation-pack.zip", alias="ARCHIVE_FILENAME")
    job_ttl_seconds: int = Field(default=3600, ge=1, alias="JOB_TTL_SECONDS")
    
    # Catalog (YAML only)
    prompt_catalog: List[PromptSpec] = Field(default_factory=list)


# Global config instance
_config: Optional[Config] = None


def _resolve_config_path(path: Optional[Union[str, Path]]) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.getenv("TRANSFORM_PACK_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[Union[str, Path]] = None) -> Config:
    """
    Load configuration from environment and YAML file.
    
    Args:
        path: Optional YAML path; falls back to TRANSFORM_PACK_CONFIG,
            then config/config.yaml
        
    Returns:
        Config instance
        
    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config
    
    config_path = _resolve_config_path(path)
    if not config_path.exists():
        raise ConfigurationError(f"config.yaml not found at {config_path}")
    
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            file_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {config_path}: {e}") from e
    
    if not isinstance(file_config, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")
    
    config_data = {
        **os.environ,
        **file_config,
    }
    
    try:
        _config = Config(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e
    
    logger.info(
        "Configuration loaded successfully",
        extra={
            "config_path": str(config_path),
            "prompts_count": len(_config.prompt_catalog),
            "batch_size": _config.batch_size,
            "environment": _config.app_env,
        }
    )
    
    return _config


def get_config() -> Config:
    """
    Get the current configuration instance.
    
    Raises:
        ConfigurationError: If config not loaded
    """
    if _config is None:
        raise ConfigurationError("Configuration not loaded. Call load_config() first.")
    return _config
