import os
import sys
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

# Add src to pythonpath
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from wind_compass.models import RawStationData, VariableSentinels  # noqa: E402

MISSING = -2.0e30
FLAGGED = -1.0e30


@pytest.fixture
def sentinels() -> VariableSentinels:
    return VariableSentinels(missing=MISSING, flagged=FLAGGED)


@pytest.fixture
def raw_station(sentinels) -> RawStationData:
    """Five hourly readings with one missing and one flagged value."""
    return RawStationData(
        station_id="037720-99999",
        epoch=datetime(1931, 1, 1),
        time_offsets=np.array([0, 1, 2, 3, 4]),
        temperature=np.array([5.0, MISSING, 6.5, 7.0, 7.25]),
        wind_speed=np.array([3.1, 2.0, FLAGGED, 4.4, 0.0]),
        wind_direction=np.array([350.0, 10.0, 20.0, MISSING, 0.0]),
        temperature_sentinels=sentinels,
        wind_speed_sentinels=sentinels,
        wind_direction_sentinels=sentinels,
    )


@pytest.fixture
def pair_frame() -> pd.DataFrame:
    """Two readings sharing group (hour=3, month=1)."""
    return pd.DataFrame(
        {
            "time": pd.to_datetime(["2020-01-15 03:00", "2020-01-16 03:00"]),
            "temperature": [10.0, 20.0],
            "wind_speed": [2.0, 4.0],
            "wind_direction": [90.0, 180.0],
        }
    )


@pytest.fixture
def hourly_frame() -> pd.DataFrame:
    """Two years of synthetic hourly data with a diurnal and seasonal cycle."""
    rng = np.random.default_rng(7)
    times = pd.date_range("2019-01-01", "2020-12-31 23:00", freq="h")
    diurnal = 4.0 * np.sin(2 * np.pi * (times.hour - 9) / 24)
    seasonal = 8.0 * np.sin(2 * np.pi * (times.month - 4) / 12)
    temperature = 10.0 + diurnal + seasonal + rng.normal(0, 1.5, len(times))
    return pd.DataFrame(
        {
            "time": times,
            "temperature": temperature,
            "wind_speed": rng.gamma(2.0, 2.0, len(times)),
            "wind_direction": rng.choice(np.arange(0, 360, 22.5), len(times)),
        }
    )
