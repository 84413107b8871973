"""
Runtime settings for the catalog service.

Values come from the environment (a local .env file is honoured) and fall
back to the defaults below.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATA_DIR = Path(__file__).parent / "data"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    default_limit: int = 20
    max_limit: int = 100
    max_page: int = 1_000_000
    collation: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=Path(os.getenv("CATALOG_DATA_DIR", str(DEFAULT_DATA_DIR))),
            cors_origins=_env_list("CATALOG_CORS_ORIGINS", ["http://localhost:3000"]),
            default_limit=_env_int("CATALOG_DEFAULT_LIMIT", 20),
            max_limit=_env_int("CATALOG_MAX_LIMIT", 100),
            max_page=_env_int("CATALOG_MAX_PAGE", 1_000_000),
            collation=os.getenv("CATALOG_COLLATION", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


settings = Settings.from_env()
