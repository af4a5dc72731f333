"""Qdrant connection parameters and target resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from code_vector_store.config import Settings

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6333


@dataclass(frozen=True)
class QdrantConnectionConfig:
    """Connection parameters accepted by the Qdrant adapter.

    Precedence for the target: an explicit ``url`` wins; otherwise ``host``
    with ``port`` (6333 when omitted); otherwise localhost:6333. ``api_key``
    and ``timeout`` are passed through whenever supplied.
    """

    url: str | None = None
    api_key: str | None = None
    host: str | None = None
    port: int | None = None
    timeout: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> QdrantConnectionConfig:
        return cls(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            host=settings.qdrant_host,
            port=settings.qdrant_port,
            timeout=settings.qdrant_timeout,
        )

    @property
    def target(self) -> str:
        """Human-readable connection target, safe to log."""
        if self.url:
            return self.url
        if self.host:
            return f"{self.host}:{self.port or DEFAULT_PORT}"
        return f"{DEFAULT_HOST}:{DEFAULT_PORT}"

    def resolve_client_kwargs(self) -> dict[str, Any]:
        """Build keyword arguments for ``AsyncQdrantClient``."""
        kwargs: dict[str, Any]
        if self.url:
            kwargs = {"url": self.url}
        elif self.host:
            kwargs = {"host": self.host, "port": self.port or DEFAULT_PORT}
        else:
            kwargs = {"host": DEFAULT_HOST, "port": DEFAULT_PORT}

        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.timeout:
            kwargs["timeout"] = self.timeout
        return kwargs
