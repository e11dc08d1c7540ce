from pathlib import Path

from pydantic_settings import BaseSettings

_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "Chat Relay"
    debug: bool = False

    # Paths
    data_dir: Path = _ROOT / "data"
    db_path: Path = _ROOT / "chatrelay.db"

    # Blob storage
    public_dir: Path = _ROOT / "data" / "public"
    public_mount: str = "/public"
    app_url: str = "http://localhost:8000"

    # Provider
    openai_api_key: str = ""
    image_model: str = "gpt-image-1"
    image_sizes: list[str] = ["1024x1024", "1024x1536", "1536x1024"]
    image_qualities: list[str] = ["low", "medium", "high"]
    reasoning_efforts: list[str] = ["low", "medium", "high"]

    # Conversations
    title_words: int = 7
    conversations_per_page: int = 20
    stream_error_text: str = "خطایی پیش آمده."

    # Uploads
    upload_expire_hours: int = 12

    # Readiness polling
    file_poll_interval_seconds: float = 3.0
    file_poll_max_attempts: int = 200

    # Job queue
    job_worker_enabled: bool = True
    job_poll_interval_seconds: float = 1.0
    job_max_attempts: int = 3
    job_retry_backoff_seconds: float = 5.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(_ROOT / ".env"),
        "env_prefix": "CHATRELAY_",
    }


settings = Settings()
