from pathlib import Path
from typing import Dict, Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Wayback Keyword Scanner"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True
    API_PREFIX: str = "/api"

    # ── Archive ─────────────────────────────────
    ARCHIVE_BASE_URL: str = "https://web.archive.org"
    ARCHIVE_CDX_URL: str = "https://web.archive.org/cdx/search/cdx"
    ARCHIVE_HOST_MARKER: str = "archive.org"
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/115.0.0.0 Safari/537.36"
    )

    # ── Scan ────────────────────────────────────
    REQUEST_TIMEOUT: float = 60.0  # seconds, index and replay fetches
    POLITENESS_DELAY_MIN: float = 0.5
    POLITENESS_DELAY_MAX: float = 1.0
    DEFAULT_SNAPSHOT_LIMIT: int = 100

    # ── Logging ─────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def archive_headers(self) -> Dict[str, str]:
        """Headers the archive expects before it will serve replay content."""
        return {
            "User-Agent": self.USER_AGENT,
            "Referer": f"{self.ARCHIVE_BASE_URL.rstrip('/')}/",
        }


settings = Settings()
