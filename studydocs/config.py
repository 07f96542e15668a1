from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Student Document Portal"

    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str

    STORAGE_BUCKET: str = "documents"
    DOCUMENTS_TABLE: str = "documents"
    SIGNED_URL_TTL_SECONDS: int = 3600

    HTTP_TIMEOUT_SECONDS: float = 30.0

    # signup confirmation links land here
    SITE_URL: str = "http://localhost:8501"
    DASHBOARD_PATH: str = "/Dashboard"

    LOGIN_REDIRECT_DELAY_SECONDS: float = 1.2
    SIGNUP_REDIRECT_DELAY_SECONDS: float = 3.0
    ALERT_TTL_SECONDS: float = 6.0

    MIN_PASSWORD_LENGTH: int = 6

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def email_redirect_url(self) -> str:
        return self.SITE_URL.rstrip("/") + "/" + self.DASHBOARD_PATH.lstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
