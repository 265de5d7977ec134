"""Review store database settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.settings.base import get_project_root


class DatabaseSettings(BaseSettings):
    """Review store database configuration.

    Attributes:
        url: Full SQLAlchemy connection URL. Defaults to a SQLite file.
    """

    url: str | None = Field(default=None, alias="DATABASE_URL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def sync_url(self) -> str:
        """Resolve the synchronous connection URL."""
        if self.url:
            return self.url
        return f"sqlite:///{get_project_root() / 'data' / 'critic_reviews.db'}"

    @property
    def is_sqlite(self) -> bool:
        """True when the resolved URL targets SQLite."""
        return self.sync_url.startswith("sqlite")
