from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "LegalFlow"
    debug: bool = False

    # CORS
    cors_origins: str = "http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Database
    database_url: str = "sqlite:///./legalflow.db"

    # Forms catalogue (YAML overlay on the built-in defaults)
    forms_config_path: Optional[str] = None

    # Workflow
    default_sla_days: int = 14
    decision_max_retries: int = 3  # optimistic-lock retries per decision

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    file_logging: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LEGALFLOW_",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
