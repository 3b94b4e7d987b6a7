"""
Oversight Core - Configuration and the governance error taxonomy.
"""

from oversight.core.config import OversightSettings, get_settings
from oversight.core.exceptions import (
    OversightException,
    ValidationError,
    NotFoundError,
    AuthorizationError,
    ConflictError,
    ConfigurationError,
)

__all__ = [
    "OversightSettings",
    "get_settings",
    "OversightException",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
    "ConfigurationError",
]
