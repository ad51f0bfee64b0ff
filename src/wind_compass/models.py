from datetime import datetime
from typing import NamedTuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class GroupKey(NamedTuple):
    """(hour of day, month) bucket used for the diurnal/seasonal baseline."""

    hour: int
    month: int


class Observation(BaseModel):
    """
    One measurement instant. None marks an absent value.
    """

    time: datetime
    temperature: float | None = None
    wind_speed: float | None = Field(default=None, ge=0)
    wind_direction: float | None = Field(default=None, ge=0, lt=360)

    @property
    def complete(self) -> bool:
        return None not in (self.temperature, self.wind_speed, self.wind_direction)


class GroupBaseline(BaseModel):
    """
    Baseline statistics for one group key. Frozen once computed.
    stddev_temperature is None when the group has a single member.
    """

    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    month: int = Field(ge=1, le=12)
    count: int = Field(ge=1)
    mean_temperature: float
    stddev_temperature: float | None = None

    @property
    def key(self) -> GroupKey:
        return GroupKey(self.hour, self.month)


class AnalysisRow(Observation):
    """An observation with its group baseline, anomaly and standardized deviation."""

    temperature: float
    wind_speed: float = Field(ge=0)
    wind_direction: float = Field(ge=0, lt=360)
    hour: int = Field(ge=0, le=23)
    month: int = Field(ge=1, le=12)
    mean_temperature: float
    stddev_temperature: float | None = None
    temp_anomaly: float
    temp_deviation: float | None = None


class VariableSentinels(BaseModel):
    """Reserved raw values meaning 'missing' and 'flagged as unreliable'."""

    missing: float
    flagged: float


class RawStationData(BaseModel):
    """
    Raw parallel arrays as read from a station file.
    time_offsets are hours since epoch.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    station_id: str | None = None
    epoch: datetime
    time_offsets: np.ndarray
    temperature: np.ndarray
    wind_speed: np.ndarray
    wind_direction: np.ndarray
    temperature_sentinels: VariableSentinels
    wind_speed_sentinels: VariableSentinels
    wind_direction_sentinels: VariableSentinels


class StationInfo(BaseModel):
    """One entry of the station directory."""

    station_id: str
    name: str
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    elevation: float | None = None
