import os
from dotenv import load_dotenv

load_dotenv()  # Load env vars from .env


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if url and url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url or "sqlite:///./school_office.db"


class Settings:
    """
    Runtime configuration read from the environment.

    Values are resolved once at import time; tests override attributes
    directly on the module-level `settings` instance.
    """
    def __init__(self):
        self.database_url = _database_url()
        self.jwt_secret = os.environ.get("JWT_SECRET", "dev_secret_change_me")
        self.jwt_expires_hours = int(os.environ.get("JWT_EXPIRES_HOURS", 12))
        self.admin_user = os.environ.get("ADMIN_USER", "admin")
        self.admin_pass = os.environ.get("ADMIN_PASS", "admin123")
        self.upload_dir = os.environ.get("UPLOAD_DIR", os.path.abspath("./uploads"))
        self.log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
        self.host = os.environ.get("HOST", "127.0.0.1")
        self.port = int(os.environ.get("PORT", 5000))


settings = Settings()
