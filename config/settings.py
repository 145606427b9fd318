import os
from pathlib import Path
from typing import List
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel

TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUTHY


def get_allowed_origins() -> List[str]:
    """Get allowed origins from ALLOWED_ORIGINS, any origin when unset"""
    env_origins = os.getenv("ALLOWED_ORIGINS", "").split(",")
    env_origins = [origin.strip() for origin in env_origins if origin.strip()]
    return env_origins or ["*"]


class RelaySettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    serve_static: bool = False
    static_dir: str = "client/build"
    allowed_origins: List[str] = ["*"]
    log_level: str = "INFO"
    report_unreachable: bool = True
    outbox_limit: int = 256
    environment: str = "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def index_file(self) -> Path:
        return Path(self.static_dir) / "index.html"


def load_environment():
    """Load .env from the working directory without overriding real variables"""
    load_dotenv(find_dotenv(usecwd=True))


def get_settings() -> RelaySettings:
    """Read settings from the environment (and .env when present)"""
    load_environment()
    return RelaySettings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", 8000)),
        # PROD is the switch older deployments use
        serve_static=_flag("SERVE_STATIC", default=_flag("PROD")),
        static_dir=os.getenv("STATIC_DIR", "client/build"),
        allowed_origins=get_allowed_origins(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        report_unreachable=_flag("REPORT_UNREACHABLE", default=True),
        outbox_limit=int(os.getenv("OUTBOX_LIMIT", 256)),
        environment=os.getenv("RELAY_ENVIRONMENT", "development"),
    )


def validate_environment(settings: RelaySettings):
    """Validate settings that would otherwise fail at request time"""
    if not 0 < settings.port < 65536:
        raise RuntimeError(f"PORT must be between 1 and 65535, got {settings.port}")
    if settings.serve_static and not settings.index_file.is_file():
        raise RuntimeError(
            f"Static serving is enabled but {settings.index_file} does not exist"
        )
    if settings.outbox_limit < 1:
        raise RuntimeError(f"OUTBOX_LIMIT must be positive, got {settings.outbox_limit}")
