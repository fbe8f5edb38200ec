from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"

    # Xray Cloud Integration (credentials come from environment)
    xray_base_url: str = "https://xray.cloud.getxray.app"
    xray_client_id: Optional[str] = None
    xray_client_secret: Optional[str] = None
    # Per-call timeouts in seconds; there is no retry policy at any level
    xray_request_timeout: float = 30.0
    xray_import_timeout: float = 60.0
    # Bulk import job polling
    xray_job_max_attempts: int = 30
    xray_job_poll_interval: float = 2.0
    # Page size for project entity listings
    xray_listing_limit: int = 100
    # Xray tokens live 24h; refresh 30 minutes before they expire
    xray_token_expiry_hours: int = 24
    xray_token_refresh_buffer_minutes: int = 30

    # JIRA Integration (used to update tests that already exist)
    jira_base_url: Optional[str] = None
    jira_username: Optional[str] = None
    jira_api_token: Optional[str] = None

    # Default project for records that do not carry one
    default_project_key: Optional[str] = None

    # Database Configuration
    database_url: str = "sqlite:///./data/testcases.db"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def xray_token_ttl_seconds(self) -> float:
        return float(
            (self.xray_token_expiry_hours * 60 - self.xray_token_refresh_buffer_minutes) * 60
        )


# Global settings instance
settings = Settings()
