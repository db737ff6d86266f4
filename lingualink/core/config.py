from typing import Optional
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    API_BASE_URL: str = "http://127.0.0.1:3000/api"  # Override with your backend host
    WS_BASE_URL: str = ""  # Empty: derived from API_BASE_URL
    HTTP_TIMEOUT: float = 30.0
    UPLOAD_TIMEOUT: float = 30.0
    IMAGE_TIMEOUT: float = 60.0
    AUDIO_TIMEOUT: float = 90.0
    WS_CONNECT_TIMEOUT: float = 5.0
    JOB_TIMEOUT: float = 600.0
    DOWNLOAD_DIR: str = "./downloads"
    SHARED_MEDIA_DIR: Optional[str] = None
    LOG_FILE: str = "lingualink.log"
    DEBUG_MODE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore" # Ignore extra env vars
    )

    @property
    def ws_url(self) -> str:
        """Event channel URL, derived from the HTTP host when not set explicitly."""
        if self.WS_BASE_URL:
            return self.WS_BASE_URL
        parsed = urlparse(self.API_BASE_URL)
        scheme = "wss" if parsed.scheme == "https" else "ws"
        return f"{scheme}://{parsed.netloc}"

settings = Settings()
