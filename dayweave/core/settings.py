import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    aisuite_model: str = os.getenv("AISUITE_MODEL", "google-genai:gemini-1.5-pro")
    google_api_key: str = os.getenv("GOOGLE_API_KEY", "")
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:5173")
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Generation retry policy
    generation_max_attempts: int = int(os.getenv("GENERATION_MAX_ATTEMPTS", "3"))
    generation_backoff_seconds: float = float(
        os.getenv("GENERATION_BACKOFF_SECONDS", "1.0")
    )

    # Travel estimation
    travel_timeout_seconds: float = float(os.getenv("TRAVEL_TIMEOUT_SECONDS", "5.0"))
    travel_batch_size: int = int(os.getenv("TRAVEL_BATCH_SIZE", "3"))
    travel_batch_pause_seconds: float = float(
        os.getenv("TRAVEL_BATCH_PAUSE_SECONDS", "0.5")
    )
    max_walking_distance: float = float(os.getenv("MAX_WALKING_DISTANCE", "1.5"))

    # Places lookups
    places_search_radius: int = int(os.getenv("PLACES_SEARCH_RADIUS", "5000"))


def get_settings() -> Settings:
    return Settings()
