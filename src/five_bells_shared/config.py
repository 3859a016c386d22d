from __future__ import annotations

import base64
import socket

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from pydantic import ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings

IN_MEMORY_SQLITE = "sqlite+aiosqlite://"


class Settings(BaseSettings):
    PUBLIC_HTTPS: bool = False
    BIND_IP: str = "0.0.0.0"
    PORT: int = 3000
    HOSTNAME: str = Field(default_factory=socket.gethostname)
    PUBLIC_PORT: int | None = None

    DB_URI: str = IN_MEMORY_SQLITE
    DB_SYNC: bool | None = None
    DB_POOL_RECYCLE: int = 300

    NOTIFICATION_LOOKAHEAD_MS: int = 100
    NOTIFICATION_ERROR_RETRY_SECONDS: float = 1.0

    LOG_LEVEL: str = "INFO"

    # Unprefixed, shared by every service in the process.
    ENVIRONMENT: str = Field(default="development", validation_alias="ENVIRONMENT")

    # Base64, NaCl layout: the secret is the 32-byte seed followed by the public key.
    ED25519_SECRET_KEY: str | None = None
    ED25519_PUBLIC_KEY: str | None = None

    @model_validator(mode="after")
    def _resolve_ed25519_keys(self) -> Settings:
        if not self.ED25519_SECRET_KEY:
            if self.ENVIRONMENT == "production":
                raise ValueError("No ED25519_SECRET_KEY provided.")
            self.ED25519_SECRET_KEY, self.ED25519_PUBLIC_KEY = ed25519_keypair()
        elif not self.ED25519_PUBLIC_KEY:
            _, self.ED25519_PUBLIC_KEY = ed25519_keypair(self.ED25519_SECRET_KEY)
        return self

    @property
    def public_port(self) -> int:
        return self.PUBLIC_PORT or self.PORT

    @property
    def base_host(self) -> str:
        default_port = 443 if self.PUBLIC_HTTPS else 80
        if self.public_port == default_port:
            return self.HOSTNAME
        return f"{self.HOSTNAME}:{self.public_port}"

    @property
    def base_uri(self) -> str:
        scheme = "https" if self.PUBLIC_HTTPS else "http"
        return f"{scheme}://{self.base_host}"

    @property
    def db_sync(self) -> bool:
        """Whether to create tables at startup; on by default for in-memory SQLite."""
        if self.DB_SYNC is None:
            return self.DB_URI == IN_MEMORY_SQLITE
        return self.DB_SYNC

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


def ed25519_keypair(secret: str | None = None) -> tuple[str, str]:
    """Return base64 ``(secret, public)``, generating a new key when ``secret`` is None.

    ``secret`` may be the bare 32-byte seed or the 64-byte NaCl secret key.
    """
    if secret is None:
        key = Ed25519PrivateKey.generate()
    else:
        raw = base64.b64decode(secret, validate=True)
        if len(raw) not in (32, 64):
            raise ValueError(f"ED25519_SECRET_KEY must decode to 32 or 64 bytes, got {len(raw)}")
        key = Ed25519PrivateKey.from_private_bytes(raw[:32])

    public = key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    if secret is None:
        seed = key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        secret = base64.b64encode(seed + public).decode("ascii")
    return secret, base64.b64encode(public).decode("ascii")


def env_prefix(prefix: str) -> str:
    """``'five-bells-ledger'`` -> ``'FIVE_BELLS_LEDGER_'``"""
    if not prefix:
        return ""
    return prefix.upper().replace("-", "_") + "_"


def load_settings(prefix: str = "") -> Settings:
    """Read settings for one service, e.g. ``load_settings('ledger')`` reads ``LEDGER_PORT``."""
    return Settings(_env_prefix=env_prefix(prefix))  # type: ignore[call-arg]


settings = Settings()
