"""Application configuration via environment variables."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "TextypoFlow"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Generation provider
    provider: str = "gemini"  # "gemini" or "echo"
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("TEXTYPOFLOW_GEMINI_API_KEY", "GEMINI_API_KEY", "API_KEY"),
    )
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    text_model: str = "gemini-3-pro-preview"
    image_model: str = "gemini-2.5-flash-image"
    provider_timeout: float | None = None  # None = wait for the provider indefinitely

    # Execution
    max_depth: int = 64

    # Logging
    log_level: str = "INFO"
    log_format: str = "human"  # "human" or "json"

    model_config = {"env_prefix": "TEXTYPOFLOW_", "populate_by_name": True}


settings = Settings()
