import tempfile
import os
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    # spreadsheet imports
    IMPORT_SAMPLE_ROWS: int = 1
    IMPORT_MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    IMPORT_LOCK_DIR: str = os.path.join(tempfile.gettempdir(), "catalog_import_locks")
    IMPORT_LOCK_TIMEOUT_SECONDS: int = 30
    SKU_PREFIX: str = "SKU-"
    MAX_ATTRIBUTE_SLOTS: int = 5

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
