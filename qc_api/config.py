from pathlib import Path
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App Info
    APP_NAME: str = "QC Image API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | production
    DEBUG: bool = False

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 3000
    BASE_URL: str = ""  # Public base for watermarked links, e.g. https://qc.example.com

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    LOG_DIR: Path = BASE_DIR / "logs"
    LOG_TO_FILE: bool = True

    # Upstream (product data + image transformation service)
    UPSTREAM_BASE_URL: str = "https://doppel.fit"
    USER_AGENT: str = "QC-Image-API/1.0"
    METADATA_TIMEOUT: float = 10.0  # seconds
    IMAGE_TIMEOUT: float = 30.0     # seconds, larger payloads

    # Transform sent to the upstream image endpoint (always maximum fidelity)
    UPSTREAM_IMAGE_QUALITY: int = 100
    UPSTREAM_IMAGE_FORMAT: str = "png"
    UPSTREAM_IMAGE_WIDTH: int = 5000

    # Defaults of the outer contract. Legacy profile: 60 / webp / 960
    DEFAULT_STORE_PLATFORM: str = "WEIDIAN"
    DEFAULT_QUALITY: int = 90
    DEFAULT_FORMAT: str = "png"
    DEFAULT_WIDTH: int = 960
    CACHE_MAX_AGE: int = 86400

    # Watermarking
    WATERMARK_MODE: str = "image"  # image | text
    WATERMARK_TEXT: str = "WATERMARK"
    WATERMARK_OPACITY: float = 0.5
    WATERMARK_DIR: str = ""  # Explicit watermarks/ location, probed before the search path
    WATERMARK_FIXED_ROOT: str = "/var/task"  # Serverless bundle root
    WATERMARK_SCALE: float = 0.15
    WATERMARK_MARGIN: int = 10

    # Access
    API_KEYS: str = ""          # Comma separated: API_KEYS=key1,key2
    ALLOWED_ORIGINS: str = "*"  # Comma separated

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def api_keys(self) -> List[str]:
        return [k.strip() for k in self.API_KEYS.split(",") if k.strip()]

    @property
    def allowed_origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()] or ["*"]

    @property
    def public_base_url(self) -> str:
        """Base URL used when building callback links into /api/image."""
        base = self.BASE_URL.strip() or f"http://localhost:{self.PORT}"
        if not base.startswith(("http://", "https://")):
            base = f"https://{base}"
        return base.rstrip("/")

    def init_dirs(self):
        """Ensure the log directory exists."""
        if self.LOG_TO_FILE:
            self.LOG_DIR.mkdir(parents=True, exist_ok=True)

settings = Settings()
