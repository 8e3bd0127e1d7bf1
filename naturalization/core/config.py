from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment (for conditional validation)
    environment: str = Field(default="development")
    # Empty means the per-environment default
    log_level: str = Field(default="")

    # Supabase (backs the form record store and the user profile store)
    supabase_url: str = Field(default="")
    supabase_service_key: str = Field(default="")

    # Table names used by the Supabase stores
    record_table: str = Field(default="entries")
    record_meta_table: str = Field(default="entry_meta")
    user_meta_table: str = Field(default="user_meta")

    # Lockout / waiting room
    waiting_room_path: str = Field(default="/purgatory/")
    unlock_lead_months: int = Field(default=6)

    # Access gate: substring matching on the raw request URI unless strict
    strict_path_matching: bool = Field(default=False)

    # Presence analysis thresholds
    long_trip_threshold_days: int = Field(default=183)
    max_residence_gap_days: int = Field(default=30)

    @model_validator(mode="after")
    def validate_production_store_credentials(self):
        """Ensure the Supabase stores are configured in production"""
        if self.environment == "production":
            if not self.supabase_url or not self.supabase_service_key:
                raise ValueError(
                    "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set in production."
                )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
