from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "LAN Presence"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 7070

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./lanpresence.db"

    # Presence scanning
    SCAN_INTERFACE: str = "eth0"
    SCAN_RANGE: str = "192.168.2.0/24"
    SCAN_INTERVAL: int = 300  # seconds between scan cycles
    PROBE_TIMEOUT: float = 0.5  # seconds to wait for one ARP reply
    COLLECT_GRACE: float = 2.0  # added to the collection deadline of a scan
    STATIC_RESOLVER: bool = False  # report fixed addresses instead of probing

    # Device fingerprints
    HASH_ITERATIONS: int = 1000
    SALT_SIZE: int = 16

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
