# gmao/core/config.py

"""
Application settings.

Values are loaded from environment variables and from the `.env` file at the
project root through pydantic-settings.
"""

import os
from typing import Any, List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class Settings(BaseSettings):
    """
    Pydantic BaseSettings model holding every setting of the application.
    """

    model_config = SettingsConfigDict(
        env_file=os.path.join(BASE_DIR, '.env'),
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True
    )

    # --- application ---
    APP_NAME: str = "GMAO API"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "Maintenance management (GMAO) back office API"
    APP_ENV: str = Field("development", description="Application environment (development, production, testing)")
    DEBUG_MODE: bool = Field(False, description="Echo SQL statements and enable verbose errors")
    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    # --- database ---
    DATABASE_URL: SecretStr = Field(..., description="Async SQLAlchemy database URL (postgresql+asyncpg://...)")

    # --- JWT ---
    SECRET_KEY: SecretStr = Field(..., description="Secret key used to sign access tokens")
    ALGORITHM: str = Field("HS256", description="JWT signing algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, description="Access token lifetime in minutes")

    # --- arq / Redis ---
    REDIS_HOST: str = Field("localhost", description="Redis host used by the arq pool")
    REDIS_PORT: int = Field(6379, description="Redis port used by the arq pool")

    # --- uploads ---
    UPLOAD_DIR: str = Field("static/uploads", description="Directory where work order images are stored")
    MAX_IMAGES_PER_UPLOAD: int = Field(10, description="Maximum number of files accepted by one image upload")

    # --- inventory ---
    DEFAULT_LOW_STOCK_THRESHOLD: int = Field(5, description="Default reorder threshold (seuilAlerte) of new parts")

    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    def model_post_init(self, __context: Any) -> None:  # noqa: ANN001
        if not os.path.isabs(self.UPLOAD_DIR):
            self.UPLOAD_DIR = os.path.join(BASE_DIR, self.UPLOAD_DIR)


settings = Settings()
