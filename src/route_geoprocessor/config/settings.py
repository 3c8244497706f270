from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings managed by Pydantic Settings.
    Reads from environment variables and .env file.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Valhalla trace_attributes Configuration
    VALHALLA_ENDPOINT: str = "https://valhalla1.openstreetmap.de/trace_attributes"
    VALHALLA_COSTING: str = "bicycle"
    VALHALLA_BICYCLE_TYPE: str = "Hybrid"
    VALHALLA_TIMEOUT_SECONDS: float = 60.0
    VALHALLA_CACHE_NAME: str = ".valhalla_cache"
    VALHALLA_CACHE_BACKEND: str = "sqlite"
    VALHALLA_CACHE_EXPIRE_SECONDS: int = 2592000

    # Request limits enforced by the public Valhalla instance
    MAX_POINTS: int = 15000
    MAX_DISTANCE_KM: float = 150.0
    CHUNK_DELAY_SECONDS: float = 1.0

    # Background reprocessing
    DAILY_LIMIT: int = 10
    CHECK_INTERVAL_SECONDS: float = 3600.0
    STARTUP_DELAY_SECONDS: float = 10.0
    COOLDOWN_SECONDS: float = 5.0

    # Storage / Application Defaults
    ROUTE_STORE_PATH: str = "routes.json"
    LOG_LEVEL: str = "INFO"


settings = Settings()
