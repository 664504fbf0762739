from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://phantom:phantom@db:5432/phantom_pen"
    APP_ENV: str = "development"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    # Header set by the upstream identity proxy with the authenticated subject.
    AUTH_HEADER: str = "X-User-Id"

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    # Uploaded audio blobs live here until transcription finishes.
    STORAGE_DIR: str = "./data/uploads"

    # Any OpenAI-compatible endpoint works (Groq, OpenAI, a local proxy).
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str | None = "https://api.groq.com/openai/v1"
    OPENAI_MAX_RETRIES: int = 2

    STT_MODEL: str = "whisper-large-v3-turbo"
    CHAT_MODEL: str = "openai/gpt-oss-120b"
    TITLE_MODEL: str = "openai/gpt-oss-120b"

    NARRATIVE_TEMPERATURE: float = 0.2
    NARRATIVE_TIMEOUT_SECONDS: float = 60.0
    NARRATIVE_MAX_TRANSCRIPT_CHARS: int = 12_000
    NARRATIVE_MAX_WORDS: int = 200

    # Quiet period between the last content edit and the memoir rewrite.
    SYNTHESIS_DELAY_SECONDS: float = 7.0

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
