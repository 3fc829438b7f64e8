# shared/settings.py
"""
Process-wide configuration for recipehub services.

Settings are read once from the environment (and an optional .env file) and
handed to route handlers through the ``get_settings`` dependency, so no handler
touches ``os.environ`` directly.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.llm_client import ProviderSpec

CHAT_TEXT_PATH = ("choices", 0, "message", "content")
GEMINI_TEXT_PATH = ("candidates", 0, "content", "parts", 0, "text")


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = "development"
    service_name: str = "recipes"

    # Database
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "recipehub"
    db_user: str = "postgres"
    db_password: str = ""
    db_pool_min_size: int = 3
    db_pool_max_size: int = 10
    skip_schema_init: bool = False

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    search_cache_ttl_seconds: int = 60 * 60

    # Auth
    jwt_secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"

    allowed_origins: str = "*"

    # Recipe API
    spoonacular_api_key: Optional[str] = None
    spoonacular_base_url: str = "https://api.spoonacular.com"
    spoonacular_timeout_seconds: float = 15.0

    # Image CDN
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    # Text generation providers, listed in priority order
    openrouter_api_key: Optional[str] = None
    openrouter_url: str = "https://openrouter.ai/api/v1/chat/completions"
    openrouter_premium_model: str = "openai/gpt-4o"
    openrouter_economy_model: str = "openai/gpt-4o-mini"
    groq_api_key: Optional[str] = None
    groq_url: str = "https://api.groq.com/openai/v1/chat/completions"
    groq_model: str = "llama-3.3-70b-versatile"
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    llm_timeout_seconds: float = 30.0

    @property
    def dsn(self) -> str:
        """asyncpg-compatible connection string"""
        if not self.database_url:
            return (
                f"postgresql://{self.db_user}:{self.db_password}"
                f"@{self.db_host}:{self.db_port}/{self.db_name}"
            )
        # Heroku/Railway style URLs use postgres://, asyncpg wants postgresql://
        if self.database_url.startswith("postgres://"):
            return self.database_url.replace("postgres://", "postgresql://", 1)
        return self.database_url

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def cloudinary_configured(self) -> bool:
        return all(
            [self.cloudinary_cloud_name, self.cloudinary_api_key, self.cloudinary_api_secret]
        )

    def provider_specs(self) -> list[ProviderSpec]:
        """
        Build the ordered provider chain configuration.

        Only providers with a configured credential are returned; the order is
        the fixed fallback priority and is never re-evaluated at runtime.
        """
        specs = []

        if self.openrouter_api_key:
            specs.append(
                ProviderSpec(
                    name="openrouter-premium",
                    url=self.openrouter_url,
                    model=self.openrouter_premium_model,
                    request_shape="chat",
                    text_path=CHAT_TEXT_PATH,
                    api_key=self.openrouter_api_key,
                )
            )
            specs.append(
                ProviderSpec(
                    name="openrouter-economy",
                    url=self.openrouter_url,
                    model=self.openrouter_economy_model,
                    request_shape="chat",
                    text_path=CHAT_TEXT_PATH,
                    api_key=self.openrouter_api_key,
                )
            )

        if self.groq_api_key:
            specs.append(
                ProviderSpec(
                    name="groq",
                    url=self.groq_url,
                    model=self.groq_model,
                    request_shape="chat",
                    text_path=CHAT_TEXT_PATH,
                    api_key=self.groq_api_key,
                )
            )

        if self.gemini_api_key:
            specs.append(
                ProviderSpec(
                    name="gemini",
                    url=(
                        "https://generativelanguage.googleapis.com/v1beta/models/"
                        f"{self.gemini_model}:generateContent"
                    ),
                    model=self.gemini_model,
                    request_shape="gemini",
                    text_path=GEMINI_TEXT_PATH,
                    api_key=self.gemini_api_key,
                    auth_header="x-goog-api-key",
                    auth_prefix="",
                )
            )

        return specs


@lru_cache
def get_settings() -> Settings:
    """Dependency returning the process-wide settings instance"""
    return Settings()
