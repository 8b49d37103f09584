"""
Configuration settings for the Portfolio API
"""
import os
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # App
    APP_NAME: str = "portfolio-api"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    PORT: int = 3002

    # MongoDB
    MONGODB_URI: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "portfolio"

    # Admin
    ADMIN_PASSWORD: str = ""

    # Cloudinary
    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    MEDIA_ROOT_FOLDER: str = "portfolio"

    # CORS / Uploads
    CORS_ORIGINS: List[str] = ["*"]
    PUBLIC_DIR: str = "public"
    MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50MB

    class Config:
        case_sensitive = True
        # Load .env ONLY when not production
        env_file = ".env" if os.getenv("ENVIRONMENT") != "production" else None


@lru_cache
def get_settings() -> Settings:
    return Settings()
