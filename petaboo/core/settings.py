# petaboo/core/settings.py
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from typing import Annotated, List
from pydantic import field_validator

class Settings(BaseSettings):
    """
    Основные переменные окружения и настройки приложения.
    Все значения берутся из .env.
    """
    # Database
    DATABASE_URL: str

    # JWT / Identity provider
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Teams / plans
    FREE_PLAN_TEAM_LIMIT: int = 3
    PREMIUM_OWNED_TEAM_LIMIT: int = 1
    INVITATION_EXPIRE_DAYS: int = 7
    WAIT_UPDATES_MAX_TIMEOUT_SEC: int = 60

    # Admin panel: доступ только из локальной сети
    LOCAL_ACCESS_ONLY: bool = False
    # sub пользователей, которым открыт /admin
    ADMIN_USER_IDS: Annotated[List[str], NoDecode] = []

    # App meta
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000", "http://localhost:7593"]

    # Авто-сплит строковых списков из .env
    @field_validator("ALLOWED_ORIGINS", "ADMIN_USER_IDS", mode="before")
    @classmethod
    def split_csv(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

settings = Settings()
