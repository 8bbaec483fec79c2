from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str
    SQL_ECHO: bool = False
    SECRET_KEY: str = "dev-insecure-key-change-in-production"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS origins, JSON list in the environment
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    # Error messages are localized; catalogues live under app/locales
    DEFAULT_LANGUAGE: str = "es"

    # Shift listing pagination
    SHIFT_PAGE_SIZE: int = 50
    SHIFT_MAX_PAGE_SIZE: int = 200


settings = Settings()  # type: ignore[call-arg]
