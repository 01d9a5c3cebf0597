"""
Runtime settings from the environment (and an optional .env file).
"""
import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings(BaseModel):
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    language: str = "de"
    method: str = "llm"
    max_file_mb: float = Field(10, gt=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator('language')
    @classmethod
    def check_language(cls, v):
        v = v.lower()
        if v not in ('de', 'en'):
            raise ValueError(f"language must be 'de' or 'en', got {v!r}")
        return v

    @field_validator('method')
    @classmethod
    def check_method(cls, v):
        v = v.lower()
        if v not in ('llm', 'ocr'):
            raise ValueError(f"method must be 'llm' or 'ocr', got {v!r}")
        return v

    @field_validator('log_level')
    @classmethod
    def check_log_level(cls, v):
        v = v.upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"unknown log level {v!r}")
        return v


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build Settings from environment variables after loading .env."""
    load_dotenv(env_file)

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        language=os.getenv("DIGITIZER_LANGUAGE", "de"),
        method=os.getenv("DIGITIZER_METHOD", "llm"),
        max_file_mb=os.getenv("DIGITIZER_MAX_FILE_MB", "10"),
        log_level=os.getenv("DIGITIZER_LOG_LEVEL", "INFO"),
        log_file=os.getenv("DIGITIZER_LOG_FILE") or None,
    )


def configure_logging(settings: Settings, verbose: bool = False) -> None:
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.log_level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
