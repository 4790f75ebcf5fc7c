"""Persistence for AI settings and provider API keys.

Non-secret settings (provider, model, temperature, max tokens) live in
``ai-config.json``. API keys live in a separate ``secrets.json``, encrypted
with Fernet and created owner-read/write only, so the settings file can be
shared or inspected without exposing keys.
"""

import base64
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from lattice.config import EnvVar, get_environment

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "ai-config.json"
SECRETS_FILE_NAME = "secrets.json"
KEY_FILE_NAME = "secret.key"

# Settings persisted to ai-config.json. Anything else is dropped on save.
CONFIG_KEYS = ("provider", "model", "temperature", "max_tokens")


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable {path.name}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path.name}: expected a JSON object")
        return {}
    return data


def _write_private(path: Path, text: str) -> None:
    """Write text to a file readable and writable by its owner only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(text)
    # O_CREAT's mode only applies to new files
    os.chmod(path, 0o600)


def _derive_key(master_key: str) -> bytes:
    """Derive a Fernet key from a master secret using HKDF-SHA256."""
    kdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=b"lattice-secrets",
        info=b"lattice-secrets-encryption",
    )
    return base64.urlsafe_b64encode(kdf.derive(master_key.encode()))


class ConfigStore:
    """JSON file holding non-secret AI settings.

    Attributes:
        path: Location of ai-config.json.
    """

    def __init__(self, config_dir: Path):
        self.path = Path(config_dir) / CONFIG_FILE_NAME

    def load(self) -> dict[str, Any]:
        """Stored settings, or an empty dict when none are saved."""
        data = _read_json(self.path)
        return {key: data[key] for key in CONFIG_KEYS if key in data}

    def save(self, settings: dict[str, Any]) -> None:
        data = {key: settings[key] for key in CONFIG_KEYS if key in settings}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        logger.debug(f"Saved AI settings to {self.path}")


class SecretStore(ABC):
    """Abstract storage for provider API keys."""

    @abstractmethod
    def get(self, provider: str) -> str | None:
        """Stored key for a provider, or None."""

    @abstractmethod
    def set(self, provider: str, secret: str) -> None:
        """Store a provider's key, replacing any previous one."""

    @abstractmethod
    def delete(self, provider: str) -> bool:
        """Remove a provider's key. Returns True if one was stored."""


class FileSecretStore(SecretStore):
    """API keys encrypted with Fernet in a JSON file readable only by its owner.

    Each value in ``secrets.json`` is a Fernet token. The encryption key is
    derived from ``LATTICE_SECRET_KEY`` with HKDF when that is set, otherwise
    it is generated once into ``secret.key`` (mode 0600) beside the secrets.
    Tokens that no longer decrypt (the key changed) read as missing.

    Example:
        >>> store = FileSecretStore(Path("~/.lattice").expanduser())
        >>> store.set("openai", api_key)
        >>> store.get("openai") == api_key
        True
    """

    def __init__(self, config_dir: Path, master_key: str | None = None):
        self.path = Path(config_dir) / SECRETS_FILE_NAME
        self.key_path = Path(config_dir) / KEY_FILE_NAME
        self._master_key = master_key or get_environment(EnvVar.LATTICE_SECRET_KEY)
        self._fernet: Fernet | None = None

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            if self._master_key:
                key = _derive_key(self._master_key)
            else:
                key = self._load_or_create_key()
            self._fernet = Fernet(key)
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        if self.key_path.exists():
            return self.key_path.read_bytes().strip()
        key = Fernet.generate_key()
        _write_private(self.key_path, key.decode() + "\n")
        logger.info(f"Generated secret key at {self.key_path}")
        return key

    def _load(self) -> dict[str, str]:
        data = _read_json(self.path)
        return {k: v for k, v in data.items() if isinstance(v, str) and v}

    def _write(self, tokens: dict[str, str]) -> None:
        _write_private(self.path, json.dumps(tokens, indent=2))

    def get(self, provider: str) -> str | None:
        token = self._load().get(provider)
        if token is None:
            return None
        try:
            return self._get_fernet().decrypt(token.encode()).decode()
        except InvalidToken:
            logger.warning(f"Stored API key for {provider} cannot be decrypted; ignoring it")
            return None

    def set(self, provider: str, secret: str) -> None:
        tokens = self._load()
        tokens[provider] = self._get_fernet().encrypt(secret.encode()).decode()
        self._write(tokens)
        logger.info(f"Stored API key for {provider}")

    def delete(self, provider: str) -> bool:
        tokens = self._load()
        if provider not in tokens:
            return False
        del tokens[provider]
        self._write(tokens)
        logger.info(f"Removed API key for {provider}")
        return True


__all__ = [
    "CONFIG_FILE_NAME",
    "SECRETS_FILE_NAME",
    "KEY_FILE_NAME",
    "ConfigStore",
    "SecretStore",
    "FileSecretStore",
]
