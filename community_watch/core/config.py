from pydantic_settings import BaseSettings
from typing import List, Dict, Any
import json
from pathlib import Path


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


def parse_report_types(v: str) -> List[str]:
    """Parse the report type allow-list from a comma-separated string"""
    if not v:
        return []
    return [t.strip() for t in v.split(',') if t.strip()]


def parse_email_groups(v: str) -> List[Dict[str, str]]:
    """Parse default email groups from format: Name:addr1,addr2;Other Name:addr3"""
    if not v:
        return []
    groups = []
    for item in v.split(';'):
        if ':' in item:
            name, emails = item.split(':', 1)
            if name.strip():
                groups.append({"name": name.strip(), "emails": emails.strip()})
    return groups


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Community Watch"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 3001

    # Public URL of this API (used for evidence download links in emails)
    BASE_URL: str = "http://localhost:3001"
    # Admin dashboard URL linked from forwarded emails
    DASHBOARD_URL: str = "http://localhost:8081/admin"

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./community_watch.db"
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str = "dev-secret-key-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480  # 8 hours, no refresh tokens
    BCRYPT_ROUNDS: int = 10  # 4 for tests (fast), 12 for prod (secure)

    # First-run bootstrap (operators must rotate this account)
    DEFAULT_ADMIN_USERNAME: str = "admin"
    DEFAULT_ADMIN_PASSWORD: str = "admin123"
    DEFAULT_EMAIL_GROUPS: str = (
        "St Mungos Team:placeholder@stmungos.org;"
        "Hither Green Safer Neighborhoods:placeholder@met.police.uk"
    )

    # ==========================================
    # Reports & Evidence
    # ==========================================
    ALLOWED_REPORT_TYPES_STR: str = ""  # empty = any type accepted
    UPLOAD_PATH: str = "uploads"
    MAX_UPLOAD_SIZE: int = 104857600  # 100MB per request

    # ==========================================
    # Email
    # ==========================================
    SMTP_HOST: str = "smtp.ethereal.email"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = False  # implicit TLS (port 465); STARTTLS is negotiated otherwise
    EMAIL_FROM: str = ""
    EMAIL_FROM_NAME: str = "Community Watch"
    MAIL_SEND_TIMEOUT: float = 30.0  # seconds, per group send
    ATTACHMENT_SIZE_LIMIT: int = 10485760  # 10MB; above this evidence is linked, not attached

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    REPORT_RATE_LIMIT: str = "100/15 minutes"
    LOGIN_RATE_LIMIT: str = "10/15 minutes"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "*"

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._upload_dir = Path(self.UPLOAD_PATH).resolve()

        # Create directories if they don't exist
        self._upload_dir.mkdir(exist_ok=True, parents=True)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    @property
    def UPLOAD_DIR(self) -> Path:
        return self._upload_dir

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    @property
    def ALLOWED_REPORT_TYPES(self) -> List[str]:
        return parse_report_types(self.ALLOWED_REPORT_TYPES_STR)

    @property
    def DEFAULT_EMAIL_GROUP_LIST(self) -> List[Dict[str, str]]:
        return parse_email_groups(self.DEFAULT_EMAIL_GROUPS)

    @property
    def EMAIL_CONFIGURED(self) -> bool:
        return bool(self.SMTP_USER)


settings = Settings()
