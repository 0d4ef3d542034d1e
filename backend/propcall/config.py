from functools import lru_cache
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings. Secrets have no defaults."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Supabase; both unset means the in-memory store is used
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_KEY"),
    )

    # Session tokens
    auth_secret: str = "dev-secret-change-me"
    auth_token_ttl_minutes: int = 60 * 24 * 7

    # Cal.com
    calcom_api_key: Optional[str] = None
    calcom_base_url: str = "https://api.cal.com/v1"

    # ElevenLabs
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    elevenlabs_model_id: str = "eleven_multilingual_v2"
    default_voice_id: str = "EXAVITQu4vr4xnSDxMaL"

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
