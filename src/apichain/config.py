import logging
from pathlib import Path
from typing import Annotated

from pydantic import AfterValidator, Field, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import VERSION


def validate_log_level(v: str) -> str:
    level = v.upper()
    if level not in logging.getLevelNamesMapping():
        raise ValueError(f"log_level must be a logging level name, got '{v}'")
    return level


class Settings(BaseSettings):
    default_timeout_ms: PositiveInt = Field(default=30000, description="Per-request timeout in milliseconds.")
    user_agent: str = Field(default=f"apichain/{VERSION}", description="Client identifier sent with every request.")
    report_dir: Path = Field(default=Path("reports"), description="Directory that report output paths resolve under.")
    status_limit: PositiveInt = Field(default=50, description="Default number of log entries returned by status queries.")
    log_level: Annotated[str, AfterValidator(validate_log_level)] = Field(default="INFO")

    model_config = SettingsConfigDict(env_prefix="APICHAIN_")
