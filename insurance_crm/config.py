from pydantic_settings import BaseSettings
from typing import Optional, List


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str
    DATABASE_PRIVATE_URL: Optional[str] = None

    # JWT
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Mobile login
    VALID_STATES: List[str] = ["Karnataka", "TamilNadu", "AndhraPradesh"]
    DEFAULT_STATE: str = "Karnataka"

    # Account lockout
    MAX_FAILED_LOGIN_ATTEMPTS: int = 5
    LOCKOUT_MINUTES: int = 30

    # Work queue
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 500
    FOLLOW_UP_DAYS_AHEAD: int = 7

    # CORS
    CORS_ORIGINS: list = ["*"]

    # Logging / bootstrap
    LOG_LEVEL: str = "INFO"
    SKIP_DB_INIT: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
