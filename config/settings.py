"""
Catalog Feed Sync - Configuration Settings
Pydantic Settings for type-safe configuration from .env
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


ROOT_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Vendor feed
    liberta_feed_url: Optional[str] = Field(default=None)
    feed_timeout: float = Field(default=120.0)
    product_id_prefix: str = Field(default="liberta")
    
    # Policy files
    markup_path: Path = Field(default=ROOT_DIR / "config" / "markup.json")
    category_map_path: Path = Field(default=ROOT_DIR / "config" / "category-map.json")
    
    # Outputs / persisted state
    state_path: Path = Field(default=Path("./data/last-sync.json"))
    history_path: Path = Field(default=Path("./public/data/sync-history.json"))
    catalog_path: Path = Field(default=Path("./public/data/liberta-products.json"))
    
    # History / sampling limits
    history_limit: int = Field(default=90)
    state_sample_size: int = Field(default=50)
    history_sample_size: int = Field(default=10)
    
    # Processing
    dry_run: bool = Field(default=False)
    
    # Notifications
    discord_webhook_url: Optional[str] = Field(default=None)
    
    # Logging
    log_level: str = Field(default="INFO")
    log_rotation_mb: int = Field(default=10)
    log_json_format: bool = Field(default=False)
    log_file: Optional[Path] = Field(default=None)
    
    @property
    def feed_configured(self) -> bool:
        """Check if the vendor feed endpoint is configured."""
        return bool(self.liberta_feed_url and self.liberta_feed_url.strip())
    
    @property
    def discord_webhook_configured(self) -> bool:
        """Check if Discord webhook is configured."""
        return bool(self.discord_webhook_url)


# Singleton instance
settings = Settings()
