"""Client sync configuration.

The active remote endpoint and credential are passed around as an explicit
``SyncConfig`` value rather than read from global storage, so several
configurations can coexist (e.g. in tests).
"""

import hashlib
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_LOCAL_DATABASE_URL = "sqlite:///gymlog.db"
DEFAULT_UPLOAD_TIMEOUT_SECONDS = 30.0


class SyncConfig(BaseModel):
    remote_url: str = ""
    api_key: str = ""
    database_url: str = DEFAULT_LOCAL_DATABASE_URL
    upload_timeout_seconds: float = Field(default=DEFAULT_UPLOAD_TIMEOUT_SECONDS, gt=0)

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build a config from environment variables (and a .env file)."""
        load_dotenv()
        return cls(
            remote_url=os.environ.get("GYMLOG_REMOTE_URL", "").rstrip("/"),
            api_key=os.environ.get("GYMLOG_API_KEY", ""),
            database_url=os.environ.get(
                "GYMLOG_DATABASE_URL", DEFAULT_LOCAL_DATABASE_URL
            ),
            upload_timeout_seconds=float(
                os.environ.get("GYMLOG_UPLOAD_TIMEOUT", DEFAULT_UPLOAD_TIMEOUT_SECONDS)
            ),
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.remote_url and self.api_key)

    @property
    def scope(self) -> str | None:
        """Fingerprint of the credential, used to scope local records.

        The raw key never reaches the local store.
        """
        if not self.api_key:
            return None
        return hashlib.sha256(self.api_key.encode("utf-8")).hexdigest()[:16]

    @property
    def masked_api_key(self) -> str:
        key = self.api_key
        if len(key) > 12:
            return f"{key[:8]}...{key[-4:]}"
        return key
