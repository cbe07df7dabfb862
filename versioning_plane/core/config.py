from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "File Versioning Engine"
    DATABASE_URL: str = "sqlite:///./file_versions.db"
    SQL_ECHO: bool = False
    DEFAULT_FILE_TYPE: str = "document"
    LOCK_TIMEOUT_SECONDS: float = 10.0
    # empty list accepts every extension
    ALLOWED_EXTENSIONS: List[str] = []
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
