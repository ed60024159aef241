import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _get_env(name: str, default: Optional[str] = None) -> str:
    val = os.getenv(name, default)
    if val is None or val.strip() == "":
        raise RuntimeError(f"Missing required environment variable: {name}")
    return val.strip()


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _parse_origins(raw: str) -> list[str]:
    raw = (raw or "").strip()
    if not raw:
        return ["*"]
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    create_tables: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        max_page_size = _env_int("MAX_PAGE_SIZE", MAX_PAGE_SIZE)
        return cls(
            database_url=_get_env("DATABASE_URL"),
            cors_origins=_parse_origins(os.getenv("CORS_ORIGINS", "*")),
            default_page_size=min(_env_int("DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE), max_page_size),
            max_page_size=max_page_size,
            create_tables=_env_bool("CREATE_TABLES", True),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        )
