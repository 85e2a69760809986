"""Application configuration"""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Settings read from the environment or a local .env file"""

    # Supabase
    supabase_url: str
    supabase_service_role_key: str
    store_timeout_seconds: float = 10.0

    # Application
    environment: str = "development"

    # Projects created from landing-page submissions
    project_type: str = "mutuelle_sante"
    project_commercial: str = "Auto-Lead"

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
