import os
from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from vuesync.utils.durations import parse_duration


def _default_token_file() -> Path:
    config_home = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "vuesync" / "auth.json"


class Settings(BaseSettings):
    # Emporia Vue API
    VUE_API_BASE_URL: str = Field("https://api.emporiaenergy.com", alias="VUE_API_BASE_URL")
    VUE_RATE_LIMIT_PER_SECOND: float = Field(10.0, alias="VUE_RATE_LIMIT_PER_SECOND")
    VUE_USERNAME: Optional[str] = Field(None, alias="VUE_USERNAME")
    VUE_PASSWORD: Optional[str] = Field(None, alias="VUE_PASSWORD")

    # Cognito user pool backing the Vue API
    COGNITO_REGION: str = Field("us-east-2", alias="COGNITO_REGION")
    COGNITO_CLIENT_ID: str = Field("4qte47jbstod8apnfic0bunmrq", alias="COGNITO_CLIENT_ID")
    COGNITO_USER_POOL_ID: str = Field("us-east-2_ghlOXVLi1", alias="COGNITO_USER_POOL_ID")

    # VictoriaMetrics destination (host:port)
    VM_DEST: Optional[str] = Field(None, alias="VM_DEST")

    # Export pass
    LOOKBACK: timedelta = Field(timedelta(days=10), alias="LOOKBACK")
    SCALE: str = Field("1MIN", alias="SCALE")
    ENERGY_UNIT: str = Field("KilowattHours", alias="ENERGY_UNIT")
    FLUSH_THRESHOLD: int = Field(1000, alias="FLUSH_THRESHOLD")
    METRIC_NAME: str = Field("vue_kwh", alias="METRIC_NAME")

    TOKEN_FILE: Path = Field(default_factory=_default_token_file, alias="TOKEN_FILE")
    HTTP_TIMEOUT: float = Field(30.0, alias="HTTP_TIMEOUT")
    LOG_LEVEL: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True, extra="ignore")

    @field_validator("LOOKBACK", mode="before")
    @classmethod
    def _parse_lookback(cls, v):
        # Same 240h / 90m / 10d format as --lookback.
        return parse_duration(v) if isinstance(v, str) else v


settings = Settings()
