import logging

import numpy as np
import pandas as pd

from wind_compass.errors import InputShapeError
from wind_compass.models import RawStationData, VariableSentinels

logger = logging.getLogger(__name__)

TIDY_COLUMNS = ["time", "temperature", "wind_speed", "wind_direction"]


def replace_sentinels(values: np.ndarray, sentinels: VariableSentinels) -> np.ndarray:
    """
    Replace exact matches of the missing/flagged sentinels with NaN.
    All other values are returned unchanged (as float64).
    """
    out = np.asarray(values, dtype="float64").copy()
    mask = (out == sentinels.missing) | (out == sentinels.flagged)
    out[mask] = np.nan
    return out


def tidy_observations(raw: RawStationData) -> pd.DataFrame:
    """
    Convert raw station arrays into a tidy table of
    (time, temperature, wind_speed, wind_direction).

    Absent values are NaN. Raises InputShapeError when the arrays differ in length
    or a time offset is negative.
    """
    lengths = {
        "time_offsets": len(raw.time_offsets),
        "temperature": len(raw.temperature),
        "wind_speed": len(raw.wind_speed),
        "wind_direction": len(raw.wind_direction),
    }
    if len(set(lengths.values())) != 1:
        raise InputShapeError(f"Raw arrays differ in length: {lengths}")

    offsets = np.asarray(raw.time_offsets)
    if offsets.size and offsets.min() < 0:
        raise InputShapeError("Time offsets must be non-negative hours since the epoch")

    times = pd.Timestamp(raw.epoch) + pd.to_timedelta(offsets.astype("int64"), unit="h")

    frame = pd.DataFrame(
        {
            "time": times,
            "temperature": replace_sentinels(raw.temperature, raw.temperature_sentinels),
            "wind_speed": replace_sentinels(raw.wind_speed, raw.wind_speed_sentinels),
            "wind_direction": replace_sentinels(raw.wind_direction, raw.wind_direction_sentinels),
        },
        columns=TIDY_COLUMNS,
    )

    absent = int(frame[TIDY_COLUMNS[1:]].isna().any(axis=1).sum())
    logger.debug(f"Tidied {len(frame):,} observations ({absent:,} with absent values)")
    return frame
