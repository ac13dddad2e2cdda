from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://narrate:narrate@db:5432/narrate"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://narrate.app,https://www.narrate.app"
    CORS_ORIGINS: str = "*"

    # Generative provider (any OpenAI-compatible chat-completions endpoint).
    # Defaults to Gemini's OpenAI-compatible surface.
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    AI_MODEL: str = "gemini-2.0-flash"
    AI_TEMPERATURE: float = 0.7
    AI_MAX_TOKENS: int = 1024
    AI_TIMEOUT_SECONDS: float = 30.0

    # Weekly summary policy
    SUMMARY_MIN_ENTRIES: int = 5
    SUMMARY_WINDOW_DAYS: int = 7
    SUMMARY_MAX_RETRIES: int = 3
    SUMMARY_RETRY_DELAY_SECONDS: float = 2.0
    ELIGIBILITY_CACHE_TTL_SECONDS: float = 300.0

    # Identity provider. DEMO_USER_ID is a local-development escape hatch.
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    DEMO_USER_ID: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def ai_configured(self) -> bool:
        return bool(self.AI_API_KEY.strip())


settings = Settings()
