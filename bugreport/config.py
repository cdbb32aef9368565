"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    debug: bool = False
    environment: str = "development"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Azure Blob Storage (report store)
    azure_storage_account: str = "bugreportstorage"
    azure_reports_container: str = "reports"

    # Azure User-Assigned Managed Identity
    managed_identity_client_id: str = ""

    # Widget: where reports are POSTed, resolved against base_url when relative
    endpoint: str = "/api/reports"
    base_url: str = "http://127.0.0.1:8000"

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
