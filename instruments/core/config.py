import os
from typing import Optional


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


class Settings:
    # Project
    PROJECT_NAME: str = "Instruments Metrics API"
    VERSION: str = "0.4.0"

    # Instrumentation switch - when false, Work factories hand out NullWork
    INSTRUMENTS_ENABLED: bool = os.getenv("INSTRUMENTS_ENABLED", "true").lower() == "true"

    # StatsD forwarding (no port means forwarding is disabled)
    STATSD_HOST: str = os.getenv("STATSD_HOST", "127.0.0.1")
    STATSD_PORT: Optional[int] = _optional_int("STATSD_PORT")

    # Aggregator tuning
    METER_TICK_INTERVAL: float = float(os.getenv("METER_TICK_INTERVAL", "5.0"))
    RESERVOIR_SIZE: int = int(os.getenv("RESERVOIR_SIZE", "1024"))
    RESERVOIR_ALPHA: float = float(os.getenv("RESERVOIR_ALPHA", "0.015"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FILE: Optional[str] = os.getenv("LOG_FILE") or None


settings = Settings()
