"""Application configuration."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "interview_prep"

    # JWT (tokens are issued by the auth service, we only verify them)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    # Application
    app_name: str = "Interview Prep Platform"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # CORS
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # File Upload
    max_resume_size_mb: int = 10
    max_audio_size_mb: int = 20

    # AI providers
    openai_api_key: str = ""
    groq_api_key: str = ""
    groq_base_url: str = "https://api.groq.com/openai/v1"
    gemini_api_key: str = ""
    interview_provider: str = "groq"     # "groq", "openai"
    chat_provider: str = "gemini"        # "gemini", "openai"
    interview_model: str = "openai/gpt-oss-120b"
    transcription_model: str = "whisper-large-v3"

    # AI retry policy
    ai_max_attempts: int = 3
    ai_retry_delay_seconds: float = 1.0
    ai_timeout_seconds: float = 30.0

    # Interview
    question_max_score: int = 10

    # Chat
    chat_default_temperature: float = 0.7
    chat_default_max_tokens: int = 4096
    chat_history_window: int = 20
    chat_title_max_length: int = 50

    # Rate limiting (per user and AI operation)
    rate_limit_per_minute: int = 10
    rate_limit_per_hour: int = 100
    rate_limit_per_day: int = 1000
    rate_limit_sweep_seconds: int = 300

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
