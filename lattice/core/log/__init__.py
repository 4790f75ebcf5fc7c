"""Logging micro API for lattice."""

from .lib import SecretRedactingFilter, get_logger, redact_secrets, setup_logging

__all__ = ["SecretRedactingFilter", "get_logger", "redact_secrets", "setup_logging"]
