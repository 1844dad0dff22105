# chatroom_backend/core/config.py
import os
from typing import Literal
from dotenv import load_dotenv


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """
    Setup environment variables.
        - STORE_BACKEND where the chat document lives: "file" or "redis"
        - DATA_DIR / STORE_FILE location of the JSON document (file backend)
        - REDIS_* connection and key of the document (redis backend)
        - JOIN_REQUEST_IN_WORKFLOW emit JOIN_REQUEST notifications inside the
          join transaction instead of leaving it to the caller
        - BACKUP_* periodic snapshot of the document
    """

    # Load environment variables from the .env file
    load_dotenv()

    STORE_BACKEND: Literal["file", "redis"] = os.getenv("STORE_BACKEND", "file")

    DATA_DIR: str = os.getenv("DATA_DIR", "data")
    STORE_FILE: str = os.getenv("STORE_FILE", "db.json")

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD: str = os.getenv("REDIS_PASSWORD", "")
    REDIS_KEY: str = os.getenv("REDIS_KEY", "chat:document")

    STORE_MAX_RETRIES: int = int(os.getenv("STORE_MAX_RETRIES", "10"))

    MAX_MESSAGE_LENGTH: int = int(os.getenv("MAX_MESSAGE_LENGTH", "1000"))
    JOIN_REQUEST_IN_WORKFLOW: bool = _flag("JOIN_REQUEST_IN_WORKFLOW", "true")

    BACKUPS_ENABLED: bool = _flag("BACKUPS_ENABLED", "true")
    BACKUP_DIR: str = os.getenv("BACKUP_DIR", os.path.join(DATA_DIR, "backups"))
    BACKUP_INTERVAL_SECONDS: float = float(os.getenv("BACKUP_INTERVAL_SECONDS", str(24 * 60 * 60)))
    BACKUP_RETENTION: int = int(os.getenv("BACKUP_RETENTION", "7"))

    @property
    def store_path(self) -> str:
        return os.path.join(self.DATA_DIR, self.STORE_FILE)


settings = Settings()
