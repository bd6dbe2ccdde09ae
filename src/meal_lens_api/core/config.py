"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Google Cloud Vision
    google_vision_api_key: str = ""
    google_vision_api_url: str = "https://vision.googleapis.com/v1/images:annotate"
    vision_max_results: int = 10

    # USDA FoodData Central
    usda_api_key: str = ""
    usda_api_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    usda_data_type: str = "Survey (FNDDS)"
    usda_page_size: int = 5

    # Outbound HTTP policy (applies to both services)
    request_timeout_seconds: float = 5.0
    transient_retry_attempts: int = 1  # Retries on transport errors only, never on 4xx

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "meal_lens"
    persistence_enabled: bool = True

    # Uploads
    max_image_bytes: int = 10 * 1024 * 1024  # 10 MB

    # App
    debug: bool = False
    log_level: str = "INFO"
    app_name: str = "Meal Lens API"
    api_version: str = "1.0.0"

    @property
    def is_vision_configured(self) -> bool:
        """Check if the Vision API key is set."""
        return bool(self.google_vision_api_key)

    @property
    def is_usda_configured(self) -> bool:
        """Check if the USDA API key is set."""
        return bool(self.usda_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
