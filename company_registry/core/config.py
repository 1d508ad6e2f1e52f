import os
from dataclasses import dataclass
from typing import FrozenSet, List

from dotenv import load_dotenv


load_dotenv()


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables.

    Provides validated access to the storage and geolocation backends and
    the request pipeline limits.
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))

    REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
    SHUTDOWN_TIMEOUT_SECONDS: float = float(os.getenv("SHUTDOWN_TIMEOUT_SECONDS", "30"))

    ACL_ALLOWED_COUNTRIES_ENV: str = os.getenv("ACL_ALLOWED_COUNTRIES", "Cyprus")
    TRUST_FORWARDED_FOR: bool = _env_bool("TRUST_FORWARDED_FOR")

    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_SERVICE_KEY: str = os.getenv("SUPABASE_SERVICE_KEY", "")
    SUPABASE_COMPANIES_TABLE: str = os.getenv("SUPABASE_COMPANIES_TABLE", "companies")

    IPAPI_KEY: str = os.getenv("IPAPI_KEY", "")
    IPAPI_BASE_URL: str = os.getenv("IPAPI_BASE_URL", "http://api.ipapi.com")

    CORS_ALLOWED_ORIGINS_ENV: str = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000")

    @staticmethod
    def allowed_countries() -> FrozenSet[str]:
        return frozenset(_env_list("ACL_ALLOWED_COUNTRIES", "Cyprus"))

    @staticmethod
    def allowed_origins(extra_origins: List[str] | None = None) -> List[str]:
        merged = _env_list("CORS_ALLOWED_ORIGINS", "http://localhost:3000")
        if extra_origins:
            merged.extend(extra_origins)
        # Deduplicate while preserving order
        seen = set()
        result: List[str] = []
        for origin in merged:
            if origin not in seen:
                seen.add(origin)
                result.append(origin)
        return result

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == "development"

    @classmethod
    def validate(cls) -> None:
        if cls.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")
        if cls.SHUTDOWN_TIMEOUT_SECONDS <= 0:
            raise ValueError("SHUTDOWN_TIMEOUT_SECONDS must be positive")
        if cls.is_development():
            return
        if not cls.SUPABASE_URL:
            raise ValueError("SUPABASE_URL environment variable is required")
        if not cls.SUPABASE_SERVICE_KEY:
            raise ValueError("SUPABASE_SERVICE_KEY environment variable is required")
        if not cls.IPAPI_KEY:
            raise ValueError("IPAPI_KEY environment variable is required")
