from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    app_env: str = "dev"
    port: int = 5000

    # Mongo
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "guroosh"

    # Auth
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 7

    # comma separated, "*" allows everything
    cors_origins: str = "*"

    # Zakat (SAR per gram, used when no live gold price is configured)
    gold_price_per_gram: float = 250.0

    # Auth rate limits (limits syntax: "<count>/<window>")
    rate_limit_enabled: bool = True
    auth_rate_limit: str = "10/15minutes"
    password_reset_rate_limit: str = "5/hour"

    # Budget alert sweep
    scheduler_enabled: bool = True
    budget_alert_cron_minute: str = "*/30"

    # IMPORTANT: ignore extra keys in .env to avoid crashes
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
