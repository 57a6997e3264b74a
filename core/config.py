"""
Application configuration using Pydantic settings.
"""
from typing import Optional
from pydantic import BaseModel
from pydantic_settings import BaseSettings


class LLMConfig(BaseModel):
    """Settings handed to the LLM client at construction."""

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "gpt-4o-mini"
    vision_model: str = "gpt-4o"
    max_tokens: int = 4096
    help_max_tokens: int = 200
    temperature: float = 0.7
    timeout_seconds: float = 60.0


class MapsConfig(BaseModel):
    """Settings handed to the maps client at construction."""

    api_key: Optional[str] = None
    base_url: str = "https://maps.googleapis.com/maps/api"
    timeout_seconds: float = 15.0


class SearchConfig(BaseModel):
    """Settings handed to the web search client at construction."""

    api_key: Optional[str] = None
    engine_id: Optional[str] = None
    base_url: str = "https://www.googleapis.com/customsearch/v1"
    max_results: int = 3
    timeout_seconds: float = 15.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: str = "5432"
    db_user: str = "user"
    db_password: str = "password"
    db_name: str = "drivelearn"

    # JWT settings (tokens are issued by the auth provider, only verified here)
    jwt_secret_key: str = "change-this-in-production"
    jwt_algorithm: str = "HS256"
    jwt_audience: Optional[str] = None

    # OpenAI settings
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_vision_model: str = "gpt-4o"
    openai_max_tokens: int = 4096
    openai_help_max_tokens: int = 200
    openai_temperature: float = 0.7
    llm_timeout_seconds: float = 60.0

    # Google Maps settings
    google_maps_api_key: Optional[str] = None
    google_maps_base_url: str = "https://maps.googleapis.com/maps/api"
    maps_timeout_seconds: float = 15.0

    # Google Custom Search (optional web search for the assistant)
    google_search_api_key: Optional[str] = None
    google_search_engine_id: Optional[str] = None
    google_search_base_url: str = "https://www.googleapis.com/customsearch/v1"
    search_max_results: int = 3
    search_timeout_seconds: float = 15.0

    # Question generation settings
    generation_max_input_chars: int = 15000
    material_question_count: int = 10
    text_question_count: int = 30
    image_question_count: int = 20

    # Voice answer matching
    answer_match_threshold: float = 0.5

    # File upload / storage settings
    max_file_size_mb: int = 50
    allowed_mime_types: list[str] = [
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "text/markdown",
        "image/png",
        "image/jpeg",
    ]
    storage_directory: str = "cache/study-materials"

    # Application settings
    app_name: str = "DriveLearn Backend API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    enable_request_logging: bool = True
    enable_sql_logging: bool = False
    enable_file_logging: bool = True
    log_directory: str = "logs"
    log_file_max_size_mb: int = 10
    log_file_backup_count: int = 5
    log_compression: bool = True
    app_log_file: str = "app.log"
    error_log_file: str = "error.log"
    ai_log_file: str = "ai.log"
    maps_log_file: str = "maps.log"
    database_log_file: str = "database.log"
    access_log_file: str = "access.log"

    # Security settings
    enable_security_headers: bool = True
    max_request_size_bytes: int = 60 * 1024 * 1024

    @property
    def async_database_url(self) -> str:
        """Database URL for the async engine; DATABASE_URL wins over the parts."""
        if self.database_url:
            return self.database_url
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    def llm_config(self) -> LLMConfig:
        return LLMConfig(
            api_key=self.openai_api_key,
            base_url=self.openai_base_url,
            model=self.openai_model,
            vision_model=self.openai_vision_model,
            max_tokens=self.openai_max_tokens,
            help_max_tokens=self.openai_help_max_tokens,
            temperature=self.openai_temperature,
            timeout_seconds=self.llm_timeout_seconds,
        )

    def maps_config(self) -> MapsConfig:
        return MapsConfig(
            api_key=self.google_maps_api_key,
            base_url=self.google_maps_base_url,
            timeout_seconds=self.maps_timeout_seconds,
        )

    def search_config(self) -> SearchConfig:
        return SearchConfig(
            api_key=self.google_search_api_key,
            engine_id=self.google_search_engine_id,
            base_url=self.google_search_base_url,
            max_results=self.search_max_results,
            timeout_seconds=self.search_timeout_seconds,
        )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
