from pydantic import model_validator
from pydantic_settings import BaseSettings
from typing import List, Optional

DEFAULT_STALLS = [
    {"id": "A", "name": "STALL A", "access_code": "stallA2025"},
    {"id": "B", "name": "STALL B", "access_code": "stallB2025"},
]

class Settings(BaseSettings):
    # Application
    PROJECT_NAME: str = "Visitor Management System"
    VERSION: str = "1.0.0"
    PORT: int = 3000
    APP_BASE_URL: Optional[str] = None  # Defaults to http://localhost:<PORT>

    # Record store
    DATA_DIR: str = "data"
    DB_FILE: Optional[str] = None  # Defaults to <DATA_DIR>/db.json
    QR_DIR: str = "public/qrcodes"
    SEED_STALLS: List[dict] = DEFAULT_STALLS

    # MongoDB mirror (disabled when MONGODB_URI is empty)
    MONGODB_URI: Optional[str] = None
    MONGODB_DB: str = "vms"
    MONGODB_TIMEOUT_MS: int = 5000

    # SMTP
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False  # Implicit TLS (port 465)
    SMTP_STARTTLS: bool = True
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    SMTP_FROM: Optional[str] = None
    SMTP_REPLY_TO: Optional[str] = None
    SMTP_TIMEOUT: float = 10.0

    # Event details used in the confirmation email
    EVENT_NAME: str = "Event"
    EVENT_DATE: str = ""
    EVENT_VENUE: str = ""
    EVENT_TIME: str = ""
    ARTWORK_URL: str = ""

    # Credentials
    QR_IMAGE_SIZE: int = 600

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "app.log"

    @model_validator(mode="after")
    def fill_derived_defaults(self):
        if not self.APP_BASE_URL:
            self.APP_BASE_URL = f"http://localhost:{self.PORT}"
        if not self.DB_FILE:
            self.DB_FILE = f"{self.DATA_DIR}/db.json"
        return self

    @property
    def sender(self) -> str:
        return self.SMTP_FROM or self.SMTP_USER or "Event <noreply@example.com>"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
