from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql+asyncpg://plexzora:plexzora@db:5432/plexzora"
    LOG_LEVEL: str = "INFO"

    JWT_SECRET: str = "changeme"
    JWT_ALGORITHM: str = "HS256"
    # bcrypt hash of the admin panel password
    ADMIN_PASSWORD_HASH: str = ""

    PAYSTACK_SECRET_KEY: str = ""
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"

    PUBLIC_BASE_URL: str = "http://localhost:8000"
    CORS_ORIGINS: list[str] = ["*"]

    # Seed values for the admin policy row
    DEFAULT_RESTRICTIONS_ENABLED: bool = True
    DEFAULT_LINK_LIFESPAN_DAYS: int = 7
    DEFAULT_MAX_FORMS_PER_DAY: int = 10

    class Config:
        env_file = ".env"
        extra = "allow"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
