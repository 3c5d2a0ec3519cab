import os
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str

    late_threshold_default_seconds: int
    agency_timezone: str

    client_retries: int
    client_backoff_base: float
    client_timeout: float


def load_settings() -> Settings:
    threshold = int(os.getenv("LATE_THRESHOLD_DEFAULT_SECONDS", "300"))
    if threshold < 0:
        raise RuntimeError("LATE_THRESHOLD_DEFAULT_SECONDS must be >= 0")

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./transitledger.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        late_threshold_default_seconds=threshold,
        agency_timezone=os.getenv("AGENCY_TIMEZONE", "Europe/London"),
        client_retries=int(os.getenv("LEDGER_CLIENT_RETRIES", "4")),
        client_backoff_base=float(os.getenv("LEDGER_CLIENT_BACKOFF_BASE_SECONDS", "0.5")),
        client_timeout=float(os.getenv("LEDGER_CLIENT_TIMEOUT_SECONDS", "10")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
