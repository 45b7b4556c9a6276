"""
Configuration management for the application.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Embedding model
    embedding_model_id: str = "Xenova/all-MiniLM-L6-v2"
    embedding_model_dir: Path = Path("./models/all-MiniLM-L6-v2")
    embedding_model_file: str = "model_quantized.onnx"
    tokenizer_file: str = "tokenizer.json"
    model_hub_url: str = "https://huggingface.co"
    embedding_dim: int = 384
    max_sequence_length: int = 512

    # Inference runtime
    intra_op_num_threads: int = 1
    init_timeout_seconds: float = 90.0
    warmup_text: str = "warmup test"

    # Grouping
    embedding_cache_size: int = 500
    similarity_threshold: float = 0.45
    ai_mode: bool = True

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def model_path(self) -> Path:
        return self.embedding_model_dir / self.embedding_model_file

    @property
    def tokenizer_path(self) -> Path:
        return self.embedding_model_dir / self.tokenizer_file


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
