from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


def get_project_root() -> Path:
    current_path = Path(__file__).parent
    while current_path != current_path.parent:
        if (current_path / "pyproject.toml").exists():
            return current_path
        current_path = current_path.parent
    return Path(".")


class Settings(BaseSettings):
    # Application Settings
    APP_NAME: str = Field(default="Image Annotation Service")
    DEBUG: bool = Field(default=False)
    HOST: str = Field(default="127.0.0.1")
    PORT: int = Field(default=3000)

    # CORS Settings
    ALLOWED_ORIGINS: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"]
    )

    # DB Settings
    DATABASE_URL: str = Field(default="sqlite:///./storage/databases/annotations.db")

    # Blob Storage Settings
    BLOB_BACKEND: Literal["local", "s3"] = Field(default="local")
    BLOB_BUCKET: str = Field(default="image-annotation")
    BLOB_LOCAL_DIR: str = Field(default="./storage/blobs")
    S3_REGION: str = Field(default="us-east-1")
    S3_ENDPOINT_URL: str | None = Field(default=None)
    S3_CREATE_BUCKET: bool = Field(default=False)

    # Upload Settings
    BLOB_UPLOAD_TIMEOUT: float = Field(default=60.0)  # seconds
    MAX_FIELD_SIZE: int = Field(default=100 * 1024 * 1024)  # 100MB
    SHUTDOWN_DRAIN_TIMEOUT: float = Field(default=30.0)  # seconds

    # Logging Settings
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="./logs/annotation_service.log")

    model_config = {
        "env_file": get_project_root() / ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    @property
    def absolute_database_url(self) -> str:
        """Get absolute database URL based on project root."""
        if self.DATABASE_URL.startswith("sqlite:///./"):
            relative_path = self.DATABASE_URL.replace("sqlite:///./", "")
            absolute_path = get_project_root() / relative_path
            return f"sqlite:///{absolute_path}"
        return self.DATABASE_URL

    @property
    def absolute_blob_dir(self) -> str:
        """Get absolute path for the local blob store root."""
        return str(get_project_root() / self.BLOB_LOCAL_DIR)

    @property
    def absolute_log_file(self) -> str:
        return str(get_project_root() / self.LOG_FILE)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
