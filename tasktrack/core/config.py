# core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./tasktrack.db"
    SQL_ECHO: bool = False

    JWT_SECRET_KEY: str = "your-secret-key"
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Hard ceiling on hours a user may log against one calendar day
    DAILY_HOUR_CAP: float = 8.0
    # Manual timesheet entries are laid out from this hour onwards
    WORKDAY_START_HOUR: int = 9

    LOG_LEVEL: str = "INFO"

    # Link with .env
    model_config = SettingsConfigDict(env_file="./.env", extra="ignore")

settings = Settings()
