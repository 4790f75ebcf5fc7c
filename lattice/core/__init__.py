"""Core utilities shared across lattice packages."""

from .log import SecretRedactingFilter, get_logger, redact_secrets, setup_logging

__all__ = ["SecretRedactingFilter", "get_logger", "redact_secrets", "setup_logging"]
