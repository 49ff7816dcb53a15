# gemini_flash_mcp/settings.py
import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # core
    APP_NAME: str = Field(default="Gemini Flash MCP")
    ENV: str = Field(default=os.getenv("APP_ENV", "dev"))
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # provider
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = Field(default="gemini-2.0-flash-exp-image-generation")
    GEMINI_API_BASE: str = Field(default="https://generativelanguage.googleapis.com/v1beta")
    GENERATION_TIMEOUT: float = Field(default=120.0, gt=0)
    # local development without API calls
    USE_ECHO: bool = Field(default=False)

    # artifacts; None -> <tempdir>/gemini-images
    IMAGE_OUTPUT_DIR: str | None = None

    # http
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3000)

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        extra="ignore",
    )

    @property
    def app_name(self) -> str:
        return self.APP_NAME


def get_settings() -> Settings:
    return Settings()
