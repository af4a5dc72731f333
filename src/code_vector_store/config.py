from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Qdrant connection (url > host/port > localhost:6333)
    qdrant_url: str | None = None
    qdrant_api_key: str | None = None
    qdrant_host: str | None = None
    qdrant_port: int | None = Field(default=None, ge=1, le=65535)
    qdrant_timeout: int | None = Field(default=None, ge=1)

    # Filters
    strict_filters: bool = False
