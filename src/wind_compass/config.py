from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration using Pydantic Settings.
    Reads from environment variables (prefix WIND_COMPASS_) and an optional .env file.
    """

    # Application Config
    log_level: str = "INFO"
    log_file: str | None = None

    # Station Directory / Downloads
    station_query: str = Field(default="HEATHROW", description="Station name or id to look up")
    station_index_url: str = (
        "https://www.metoffice.gov.uk/hadobs/hadisd/v340_2023f/files/"
        "hadisd_station_info_v340_2023f.txt"
    )
    station_file_url: str = Field(
        default=(
            "https://www.metoffice.gov.uk/hadobs/hadisd/v340_2023f/data/"
            "hadisd.3.4.0.2023f_19310101-20240101_{station_id}.nc.gz"
        ),
        description="URL template, {station_id} is substituted",
    )
    http_timeout: float = Field(default=60.0, gt=0)

    # Paths
    data_dir: Path = Path("data")
    output_dir: Path = Path("output")

    # Analysis Window (exclusive on both ends)
    window_start: datetime = datetime(2015, 1, 1)
    window_end: datetime = datetime(2023, 1, 1)

    # Presentation
    jitter_width: float = Field(default=5.0, ge=0, le=180)
    seed: int | None = 42

    undefined_deviation: Literal["keep", "drop", "raise"] = "keep"

    model_config = SettingsConfigDict(
        env_prefix="WIND_COMPASS_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @model_validator(mode="after")
    def check_window(self) -> "Settings":
        if self.window_start >= self.window_end:
            raise ValueError("window_start must be before window_end")
        return self


# Global settings instance
settings = Settings()
