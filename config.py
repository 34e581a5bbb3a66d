"""
config.py — application configuration from environment variables.
Variables use the MATHEVAL_ prefix; the listening port also honours plain PORT.
"""
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # HTTP server
    host: str = "0.0.0.0"
    port: int = Field(default=3000, validation_alias=AliasChoices("PORT", "MATHEVAL_PORT"))
    cors_origins: list[str] = ["*"]

    # Evaluator
    max_expression_length: int = 1000

    # CLI client (query / health)
    client_timeout_ms: int = 5_000

    # Logging
    log_level: str = "INFO"

    # App
    app_title: str = "MathEval API"
    app_version: str = "0.1.0"

    model_config = SettingsConfigDict(env_prefix="MATHEVAL_", env_file=".env", extra="ignore")
