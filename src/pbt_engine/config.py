"""Engine configuration loaded from TOML."""

import tomllib
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from pbt_engine.random_source import DEFAULT_FILTER_RETRY_LIMIT


class EngineSettings(BaseModel):
    seed: int | Literal["auto"] = "auto"
    trial_count: int = Field(default=100, ge=1, description="Fresh trials per run")
    max_shrink_steps: int = Field(default=1000, ge=0, description="Accepted shrink steps")
    per_trial_timeout: Optional[float] = Field(
        default=10.0, gt=0, description="Seconds per property call; None disables the guard"
    )
    filter_retry_limit: int = Field(default=DEFAULT_FILTER_RETRY_LIMIT, ge=1)
    max_no_progress: int = Field(
        default=50, ge=1, description="Failing candidates that are not simpler before shrinking stops"
    )
    workers: int = Field(default=1, ge=1)


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    log_dir: Optional[str] = None
    rotation: str = "10 MB"
    retention: str = "7 days"


class DatabaseConfig(BaseModel):
    path: Optional[str] = None


class EngineConfig(BaseModel):
    settings: EngineSettings = EngineSettings()
    logging: LoggingConfig = LoggingConfig()
    database: DatabaseConfig = DatabaseConfig()

    @staticmethod
    def from_toml(config_path: str | Path) -> "EngineConfig":
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
        return EngineConfig.model_validate(data)
