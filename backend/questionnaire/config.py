from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    APP_NAME: str = "Questionnaire Logic Service"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]  # JSON list in the environment, e.g. '["https://example.org"]'

    class Config:
        env_file = ".env"


settings = Settings()
