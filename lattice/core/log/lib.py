"""Core logging implementation for lattice."""

import logging
import re
import sys
from typing import Optional

__all__ = ["SecretRedactingFilter", "get_logger", "redact_secrets", "setup_logging"]

# OpenAI / DeepSeek (sk-...), Anthropic (sk-ant-...), Google (AIza...)
_SECRET_PATTERN = re.compile(
    r"(sk-ant-[A-Za-z0-9_\-]{8,}|sk-[A-Za-z0-9_\-]{8,}|AIza[0-9A-Za-z_\-]{20,})"
)
_REDACTED = "***"


def redact_secrets(text: str) -> str:
    """Replace API-key shaped tokens in ``text`` with ``***``."""
    return _SECRET_PATTERN.sub(_REDACTED, text)


class SecretRedactingFilter(logging.Filter):
    """Mask API-key shaped tokens in log records.

    The record message is rendered with its args before masking, so
    secrets passed as format arguments are caught too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_secrets(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(
    level: int | str | None = None,
    stream=sys.stderr,
) -> None:
    """Configure basic logging.

    Args:
        level: Logging level. Falls back to LATTICE_LOG_LEVEL when None.
        stream: Output stream.
    """
    if level is None:
        from ...config import EnvVar, get_environment

        level = get_environment(EnvVar.LATTICE_LOG_LEVEL)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=stream,
    )

    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SecretRedactingFilter) for f in handler.filters):
            handler.addFilter(SecretRedactingFilter())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Name of the logger.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name or "lattice")
