from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from metricrelay.core.context import CounterResetPolicy


class RelaySettings(BaseSettings):
    """Relay configuration loaded from METRICRELAY_* environment variables."""

    # proxy
    PROXY_PORT: int = Field(default=8096, ge=1, le=65535)
    LISTEN_HOST: str = "0.0.0.0"
    TYPESDB: str = "types.db"
    LOG_FILE: str = "metricrelay.log"  # empty string logs to stderr
    VERBOSE: bool = False

    # backend: "influxdb", "sqlite" or "memory" (dry run)
    BACKEND: Literal["influxdb", "sqlite", "memory"] = "influxdb"
    INFLUXDB: str = "localhost:8086"
    USERNAME: str = "root"
    PASSWORD: str = "root"
    DATABASE: str = ""
    SQLITE_PATH: str = "metricrelay.db"

    # normalization of COUNTER and DERIVE values over time
    NORMALIZE: bool = True
    COUNTER_RESET: CounterResetPolicy = CounterResetPolicy.EMIT
    CACHE_MAX_ENTRIES: int | None = Field(default=None, ge=1)
    CACHE_MAX_IDLE: float | None = Field(default=None, gt=0)  # seconds

    # delivery
    MAX_IN_FLIGHT: int | None = Field(default=None, ge=1)
    WRITE_TIMEOUT: float | None = Field(default=None, gt=0)
    SHUTDOWN_GRACE: float = Field(default=5.0, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="METRICRELAY_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def cache_max_idle_ms(self) -> int | None:
        if self.CACHE_MAX_IDLE is None:
            return None
        return int(self.CACHE_MAX_IDLE * 1000)

