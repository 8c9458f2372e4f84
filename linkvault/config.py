"""Application configuration via environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """LinkVault application settings loaded from environment variables."""

    # Required
    secret_key: str = "change-me-to-a-random-string"

    # Public URL that shared links are minted under
    base_url: str = "http://localhost:8080"

    # Data paths
    data_dir: Path = Path("/data")
    db_path: Path = Path("/data/linkvault.db")

    # Authentication
    disable_auth: bool = False
    dev_member_id: str = "dbmid:dev"
    token_expiry_days: int = 30

    # CORS (comma-separated extra origins, in addition to localhost defaults)
    cors_origins: str = ""

    # Listing
    list_page_size: int = 100

    # Team member space limits
    max_quota_batch: int = 1000
    min_quota_gb: int = 25

    model_config = {
        "env_prefix": "LINKVAULT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def link_url_prefix(self) -> str:
        return f"{self.base_url.rstrip('/')}/s/"


# Singleton instance
settings = Settings()
