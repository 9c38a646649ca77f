"""Domain models for the line-protocol dump importer.

This package contains the configuration, session and result models shared by
the services layer and the CLI.
"""

from .config_models import ConnectionConfig, ImportConfig
from .error_record import ErrorRecord
from .import_session import ImportSession
from .processing_result import ImportResult, failed_points_message

__all__ = [
    # Configuration models
    "ConnectionConfig",
    "ImportConfig",
    # Processing models
    "ErrorRecord",
    "ImportSession",
    "ImportResult",
    "failed_points_message",
]
