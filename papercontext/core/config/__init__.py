"""Configuration models for papercontext."""

from .embedding_config import EmbeddingConfig
from .logging_config import FileLoggingConfig, LoggingConfig, setup_logging
from .retrieval_config import RetrievalConfig

__all__ = [
    "EmbeddingConfig",
    "FileLoggingConfig",
    "LoggingConfig",
    "RetrievalConfig",
    "setup_logging",
]
