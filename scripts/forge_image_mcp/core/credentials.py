"""Layered credential resolution and persistence.

Lookup order is fixed: the ``GEMINI_API_KEY`` environment variable, then the
per-user config record. The result is cached for the process lifetime; only
``persist`` replaces it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidInputError

logger = logging.getLogger("forge_image_mcp.credentials")

ENV_VAR = "GEMINI_API_KEY"
CONFIG_PATH_ENV_VAR = "FORGE_IMAGE_MCP_CONFIG"
CONFIG_FILE_NAME = ".forge-image-mcp.json"

CredentialSource = Literal["environment", "config record"]


class ConfigRecord(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    token: str = Field(min_length=1)

    @field_validator("token")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("token must not be blank")
        return value


@dataclass(frozen=True)
class Credential:
    token: str
    source: CredentialSource

    def __repr__(self) -> str:
        return f"Credential(source={self.source!r})"


@dataclass(frozen=True)
class CredentialStatus:
    configured: bool
    source: Optional[CredentialSource] = None


def default_config_path() -> Path:
    override = os.getenv(CONFIG_PATH_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_FILE_NAME


class CredentialResolver:
    def __init__(
        self,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.config_path = Path(config_path) if config_path else default_config_path()
        self._environ = environ if environ is not None else os.environ
        self._credential: Optional[Credential] = None
        self._resolved = False
        self._write_lock = threading.Lock()

    def resolve(self) -> Optional[Credential]:
        if not self._resolved:
            self._credential = self._lookup()
            self._resolved = True
            if self._credential is None:
                logger.info("No Gemini credential found")
            else:
                logger.info("Gemini credential loaded from %s", self._credential.source)
        return self._credential

    def _lookup(self) -> Optional[Credential]:
        env_token = self._environ.get(ENV_VAR)
        if env_token:
            try:
                record = ConfigRecord(token=env_token)
            except ValidationError:
                logger.warning("%s is set but blank; falling back to config record", ENV_VAR)
            else:
                return Credential(token=record.token, source="environment")

        record = self._read_record()
        if record is None:
            return None
        return Credential(token=record.token, source="config record")

    def _read_record(self) -> Optional[ConfigRecord]:
        try:
            raw = self.config_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Config record %s unreadable: %s", self.config_path, exc)
            return None
        try:
            return ConfigRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Config record %s rejected: %s", self.config_path, exc.__class__.__name__)
            return None

    def persist(self, token: str) -> Credential:
        try:
            record = ConfigRecord(token=token)
        except ValidationError as exc:
            message = exc.errors()[0].get("msg", "invalid token") if exc.errors() else "invalid token"
            raise InvalidInputError(f"Invalid API key: {message}") from exc

        payload = json.dumps(record.model_dump(), indent=2) + "\n"
        with self._write_lock:
            self._write_atomic(payload)
            self._credential = Credential(token=record.token, source="config record")
            self._resolved = True
        logger.info("Gemini credential saved to %s", self.config_path)
        return self._credential

    def _write_atomic(self, payload: str) -> None:
        directory = self.config_path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.config_path.name}.", dir=str(directory))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.config_path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

    def status(self) -> CredentialStatus:
        credential = self.resolve()
        if credential is None:
            return CredentialStatus(configured=False)
        return CredentialStatus(configured=True, source=credential.source)
