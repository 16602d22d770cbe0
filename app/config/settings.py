from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon key, safe to ship to the mobile app
    supabase_service_role_key: Optional[str] = None  # server only; required to verify proxy tokens

    # Airtable (records vendor)
    airtable_api_key: Optional[str] = None
    airtable_base_id: Optional[str] = None
    airtable_api_url: str = "https://api.airtable.com/v0"

    # n8n (workflow vendor)
    n8n_base_url: Optional[str] = None
    n8n_webhook_token: Optional[str] = None

    vendor_timeout_sec: float = 30.0

    # Local key-value storage for active location/brand and the intro flag
    preferences_path: str = ".casper_prefs.json"

    # App
    app_name: str = "casper-boh-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:8081,http://localhost:19006,http://127.0.0.1:8081"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def auth_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    @property
    def airtable_configured(self) -> bool:
        return bool(self.airtable_api_key and self.airtable_base_id)

    @property
    def n8n_configured(self) -> bool:
        return bool(self.n8n_base_url)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def missing_secrets(self) -> List[str]:
        """Names of server-side secrets that are not set."""
        missing = []
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_service_role_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if not self.airtable_api_key:
            missing.append("AIRTABLE_API_KEY")
        if not self.airtable_base_id:
            missing.append("AIRTABLE_BASE_ID")
        if not self.n8n_base_url:
            missing.append("N8N_BASE_URL")
        return missing

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()


def get_settings() -> Settings:
    return settings
