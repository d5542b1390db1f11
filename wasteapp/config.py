import os
from typing import List


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _csv(name: str, default: str) -> List[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


class Settings:
    PROJECT_NAME: str = "Waste Management API"
    VERSION: str = "1.0.0"

    def __init__(self):
        # Storage backend: "sql" or "memory"
        self.STORE: str = os.getenv("WASTEAPP_STORE", "sql").lower()
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./database.sqlite")

        # Sessions
        self.SESSION_SECRET: str = os.getenv("SESSION_SECRET", "ejo-waste-management-secret")
        self.SESSION_MAX_AGE: int = int(os.getenv("SESSION_MAX_AGE", str(24 * 60 * 60)))
        self.HTTPS_ONLY: bool = _flag("HTTPS_ONLY", "false")

        self.ALLOWED_ORIGINS: List[str] = _csv("ALLOWED_ORIGINS", "")

        # Seed data
        self.SEED_DATA: bool = _flag("SEED_DATA", "true")
        self.SEED_WORKERS: List[str] = _csv("SEED_WORKERS", "worker1,worker2")

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
