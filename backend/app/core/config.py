from pydantic_settings import BaseSettings
from typing import List, Any
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


def parse_extensions(v: Any) -> List[str]:
    """Parse allowed extensions from string or list"""
    if isinstance(v, list):
        return [ext.lower() for ext in v]
    if isinstance(v, str):
        if v.startswith('['):
            try:
                return [ext.lower() for ext in json.loads(v)]
            except json.JSONDecodeError:
                pass
        return [ext.strip().lower() for ext in v.split(',') if ext.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "SEIO"
    APP_DESCRIPTION: str = "Sistema Evaluativo Integral Online"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes, below MySQL wait_timeout
    DB_ECHO: bool = False

    # ==========================================
    # JWT / Passwords
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12

    # ==========================================
    # Email (SMTP)
    # ==========================================
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@seio.edu.co"
    EMAIL_FROM_NAME: str = "SEIO"
    FRONTEND_URL: str = "http://localhost:3000"

    # ==========================================
    # Storage Configuration
    # ==========================================
    STORAGE_MODE: str = "local"  # "local" or "s3"
    UPLOAD_ROOT: str = "./uploads"

    # AWS S3
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_REGION: str = "us-east-1"
    S3_BUCKET_NAME: str = "seio-files"
    STORAGE_URL_EXPIRY: int = 3600  # 1 hour

    # Uploads
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    GUIDE_EXTENSIONS_STR: str = ".pdf"
    IMAGE_EXTENSIONS_STR: str = ".png,.jpg,.jpeg,.gif,.webp"

    # ==========================================
    # CORS / Rate limiting
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 120
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ==========================================
    # Academic rules
    # ==========================================
    PHASE_COUNT: int = 4
    SCORE_SCALE: float = 5.0
    PHASE_PASSING_SCORE: float = 3.5
    FINAL_PASSING_SCORE: float = 3.0
    MAX_QUIZ_ATTEMPTS: int = 2
    PHASE_PLAN_DEADLINE_DAYS: int = 14
    REMEDIAL_PLAN_DEADLINE_DAYS: int = 30
    ACTIVITY_DUE_DAYS: int = 7

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/seio.log"

    # ==========================================
    # Initial super administrator (seed)
    # ==========================================
    SUPERADMIN_EMAIL: str = "admin@seio.edu.co"
    SUPERADMIN_PASSWORD: str = ""
    SUPERADMIN_NAME: str = "Super Administrador"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Get CORS origins as list"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    @property
    def GUIDE_EXTENSIONS(self) -> List[str]:
        return parse_extensions(self.GUIDE_EXTENSIONS_STR)

    @property
    def IMAGE_EXTENSIONS(self) -> List[str]:
        return parse_extensions(self.IMAGE_EXTENSIONS_STR)

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @property
    def UPLOAD_DIR(self) -> Path:
        return Path(self.UPLOAD_ROOT)

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG


settings = Settings()
