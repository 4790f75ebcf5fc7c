"""AI service: provider routing plus settings and key persistence."""

from .lib import AIService
from .storage import (
    CONFIG_FILE_NAME,
    SECRETS_FILE_NAME,
    ConfigStore,
    FileSecretStore,
    SecretStore,
)

__all__ = [
    "AIService",
    "ConfigStore",
    "SecretStore",
    "FileSecretStore",
    "CONFIG_FILE_NAME",
    "SECRETS_FILE_NAME",
]
