"""Application configuration using pydantic-settings."""

import warnings
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Find .env file: check package dir first, then project root
_PACKAGE_DIR = Path(__file__).parent
_PROJECT_ROOT = _PACKAGE_DIR.parent
_ENV_FILE = _PACKAGE_DIR / ".env" if (_PACKAGE_DIR / ".env").exists() else _PROJECT_ROOT / ".env"

# Page size value meaning "show every row"
PAGE_SIZE_ALL = 0


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    Every field can be overridden with a ``PARISH_`` prefixed variable,
    e.g. ``PARISH_API_BASE_URL=http://backend:3000``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PARISH_",
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend REST service
    api_base_url: str = "http://localhost:3000"
    request_timeout: float = 5.0

    # Settings document id under /settings
    setup_document_id: str = "app"

    # Application
    read_only: bool = False
    debug: bool = False
    log_level: str = "INFO"

    # Lists
    page_size_options: list[int] = [5, 10, 15, PAGE_SIZE_ALL]
    default_page_size: int = 10
    search_debounce_ms: int = 200

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def model_post_init(self, __context) -> None:
        """Warn about a page size that the pager cannot offer."""
        if self.default_page_size not in self.page_size_options:
            warnings.warn(
                f"PARISH_DEFAULT_PAGE_SIZE={self.default_page_size} is not one of "
                f"{self.page_size_options}; pager will fall back to it on invalid input anyway.",
                UserWarning,
                stacklevel=2,
            )


settings = Settings()
