"""Client configuration for the desktop OAuth flow.

Values come either from environment variables (optionally loaded from a
``.env`` file) or from the "installed application" client-secrets JSON that
identity providers issue for desktop clients.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from desktop_oauth.models.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "openid email profile"
ENV_PREFIX = "DESKTOP_OAUTH_"


class ClientConfig(BaseModel):
    """Static client configuration, read-only for the lifetime of a session."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: str = Field(default="", repr=False)
    authorization_endpoint: str = Field(min_length=1)
    token_endpoint: str = Field(min_length=1)
    scope: str = DEFAULT_SCOPE
    project_id: str | None = None

    @classmethod
    def from_env(
        cls, env_file: str | Path | None = None, scope: str | None = None
    ) -> ClientConfig:
        """Load configuration from ``DESKTOP_OAUTH_*`` environment variables.

        Args:
            env_file: Optional .env file; when omitted a .env is searched for
                upward from the working directory
            scope: Overrides DESKTOP_OAUTH_SCOPE when given

        Raises:
            ConfigurationError: If a required variable is missing
        """
        load_dotenv(dotenv_path=env_file or find_dotenv(usecwd=True))

        values: dict[str, Any] = {
            "client_id": os.getenv(f"{ENV_PREFIX}CLIENT_ID"),
            "client_secret": os.getenv(f"{ENV_PREFIX}CLIENT_SECRET", ""),
            "authorization_endpoint": os.getenv(f"{ENV_PREFIX}AUTHORIZATION_ENDPOINT"),
            "token_endpoint": os.getenv(f"{ENV_PREFIX}TOKEN_ENDPOINT"),
            "scope": scope or os.getenv(f"{ENV_PREFIX}SCOPE") or DEFAULT_SCOPE,
        }
        return cls._build(values, source="environment")

    @classmethod
    def from_client_secrets_file(
        cls, path: str | Path, scope: str | None = None
    ) -> ClientConfig:
        """Load configuration from a client-secrets JSON file.

        The file holds an ``installed`` section (desktop clients) with
        ``client_id``, ``client_secret``, ``auth_uri``, ``token_uri`` and
        ``project_id``. A ``web`` section is accepted when ``installed`` is
        absent.

        Raises:
            ConfigurationError: If the file cannot be read or lacks a field
        """
        path = Path(path)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(f"Cannot read client secrets {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Client secrets {path} is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise ConfigurationError(f"Client secrets {path} must be a JSON object")

        section = document.get("installed") or document.get("web")
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"Client secrets {path} has no 'installed' or 'web' section"
            )

        values: dict[str, Any] = {
            "client_id": section.get("client_id"),
            "client_secret": section.get("client_secret") or "",
            "authorization_endpoint": section.get("auth_uri"),
            "token_endpoint": section.get("token_uri"),
            "project_id": section.get("project_id"),
            "scope": scope or DEFAULT_SCOPE,
        }
        return cls._build(values, source=str(path))

    @classmethod
    def _build(cls, values: dict[str, Any], source: str) -> ClientConfig:
        missing = [
            name
            for name in ("client_id", "authorization_endpoint", "token_endpoint")
            if not values.get(name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing client configuration in {source}: {', '.join(missing)}"
            )

        try:
            config = cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid client configuration in {source}: {e}") from e

        logger.debug(f"Loaded client configuration for {config.client_id} from {source}")
        return config
