"""
Risk Engine Shared Library
==========================

Common utilities and configuration shared across the risk engine services.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - models: Shared Pydantic response models

Version: 0.1.0
"""

__version__ = "0.1.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
