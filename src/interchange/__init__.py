"""
Interchange - record exchange between a relational store and a partner system
through flat files moved over FTP.
"""

__version__ = "0.1.0"

from interchange.config import ExchangeSettings, load_config
from interchange.context import RunContext
from interchange.coordinator import RunCoordinator, RunMode, RunReport
from interchange.exceptions import (
    ConfigurationError,
    ExportError,
    InterchangeConnectionError,
    InterchangeError,
    PersistenceError,
    TransferError,
    ValidationError,
)
from interchange.retry import RetryPolicy
from interchange.utils.logging import get_logger, setup_logging, setup_logging_from_config

__all__ = [
    "__version__",
    # Running
    "RunCoordinator",
    "RunMode",
    "RunReport",
    "RunContext",
    # Config
    "load_config",
    "ExchangeSettings",
    "RetryPolicy",
    # Logging
    "setup_logging",
    "setup_logging_from_config",
    "get_logger",
    # Exceptions
    "InterchangeError",
    "ConfigurationError",
    "InterchangeConnectionError",
    "TransferError",
    "ValidationError",
    "PersistenceError",
    "ExportError",
]
