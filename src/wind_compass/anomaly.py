"""
Grouped temperature anomalies.

The computation runs in two explicit passes:
  1. compute_baselines: (hour, month) -> count, sample mean, sample std
  2. apply_baselines:   every row is joined to its own group's baseline

Single-member groups (and groups without spread) have an undefined standard
deviation. Their rows keep a well-defined anomaly but a NaN deviation, unless the
caller asks for them to be dropped or for an UndefinedDeviationError instead.
"""

import logging
import math
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Literal

import numpy as np
import pandas as pd

from wind_compass.errors import (
    EmptyWindowError,
    InputShapeError,
    InsufficientGroupError,
    UndefinedDeviationError,
)
from wind_compass.models import AnalysisRow, GroupBaseline, GroupKey, Observation
from wind_compass.tidy import TIDY_COLUMNS

logger = logging.getLogger(__name__)

GROUP_KEYS = ["hour", "month"]
REQUIRED_FIELDS = ["temperature", "wind_speed", "wind_direction"]

UndefinedPolicy = Literal["keep", "drop", "raise"]


def frame_from_observations(observations: Iterable[Observation]) -> pd.DataFrame:
    """Build a tidy table from Observation records. None becomes NaN."""
    records = [o.model_dump(include=set(TIDY_COLUMNS)) for o in observations]
    frame = pd.DataFrame.from_records(records, columns=TIDY_COLUMNS)
    frame["time"] = pd.to_datetime(frame["time"])
    for col in REQUIRED_FIELDS:
        frame[col] = frame[col].astype("float64")
    return frame


def _as_frame(observations: pd.DataFrame | Iterable[Observation]) -> pd.DataFrame:
    if isinstance(observations, pd.DataFrame):
        missing = [c for c in TIDY_COLUMNS if c not in observations.columns]
        if missing:
            raise InputShapeError(f"Observation table is missing columns: {missing}")
        return observations
    return frame_from_observations(observations)


def _describe_tz(tz: Any) -> str:
    return "naive" if tz is None else f"tz-aware ({tz})"


def filter_window(frame: pd.DataFrame, window_start: datetime, window_end: datetime) -> pd.DataFrame:
    """
    Keep rows with window_start < time < window_end (both bounds exclusive).

    Raises InputShapeError when the table and the bounds disagree on being
    timezone-aware. No timezone conversion is performed.
    """
    start = pd.Timestamp(window_start)
    end = pd.Timestamp(window_end)
    frame_tz = frame["time"].dt.tz
    for name, bound in (("window_start", start), ("window_end", end)):
        if (frame_tz is None) != (bound.tz is None):
            raise InputShapeError(
                f"Observation times are {_describe_tz(frame_tz)} but {name} is {_describe_tz(bound.tz)}"
            )
    mask = (frame["time"] > start) & (frame["time"] < end)
    return frame.loc[mask]


def drop_incomplete(frame: pd.DataFrame) -> pd.DataFrame:
    """Drop rows where temperature, wind speed or wind direction is absent."""
    return frame.dropna(subset=REQUIRED_FIELDS)


def add_group_keys(frame: pd.DataFrame) -> pd.DataFrame:
    # No timezone conversion: the hour is taken in the timestamp's own zone.
    return frame.assign(hour=frame["time"].dt.hour, month=frame["time"].dt.month)


def compute_baselines(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Pass 1: one baseline per (hour, month) group present in the frame.

    Returns a table indexed by (hour, month) with columns
    count, mean_temperature and stddev_temperature (sample std, ddof=1;
    NaN for single-member groups).
    """
    baselines = frame.groupby(GROUP_KEYS, sort=True)["temperature"].agg(
        count="size", mean_temperature="mean", stddev_temperature="std"
    )
    return baselines


def baseline_for(baselines: pd.DataFrame, hour: int, month: int) -> GroupBaseline:
    """Look up one group's baseline. Raises InsufficientGroupError for an empty group."""
    try:
        row = baselines.loc[(hour, month)]
    except KeyError:
        raise InsufficientGroupError(hour, month) from None

    std = float(row["stddev_temperature"])
    return GroupBaseline(
        hour=hour,
        month=month,
        count=int(row["count"]),
        mean_temperature=float(row["mean_temperature"]),
        stddev_temperature=None if math.isnan(std) else std,
    )


def apply_baselines(frame: pd.DataFrame, baselines: pd.DataFrame) -> pd.DataFrame:
    """
    Pass 2: attach each row's group baseline and derive
    temp_anomaly and temp_deviation.
    """
    keys = pd.MultiIndex.from_frame(frame[GROUP_KEYS])
    unknown = ~keys.isin(baselines.index)
    if unknown.any():
        hour, month = keys[unknown][0]
        raise InsufficientGroupError(int(hour), int(month))

    rows = frame.join(baselines[["mean_temperature", "stddev_temperature"]], on=GROUP_KEYS)
    rows["temp_anomaly"] = rows["temperature"] - rows["mean_temperature"]
    # Zero or undefined spread leaves the deviation undefined.
    spread = rows["stddev_temperature"].where(rows["stddev_temperature"] > 0)
    rows["temp_deviation"] = rows["temp_anomaly"] / spread
    return rows


def undefined_groups(baselines: pd.DataFrame) -> list[GroupKey]:
    """Groups whose standard deviation is undefined or zero."""
    bad = baselines.index[~(baselines["stddev_temperature"] > 0)]
    return [GroupKey(int(h), int(m)) for h, m in bad]


def compute_anomalies(
    observations: pd.DataFrame | Iterable[Observation],
    window_start: datetime,
    window_end: datetime,
    undefined: UndefinedPolicy = "keep",
) -> pd.DataFrame:
    """
    Compute per-row temperature anomalies against (hour, month) baselines.

    Args:
        observations: tidy table (time, temperature, wind_speed, wind_direction)
            or an iterable of Observation records.
        window_start: exclusive lower bound on time.
        window_end: exclusive upper bound on time.
        undefined: what to do with rows whose group deviation is undefined:
            "keep" (NaN deviation), "drop" or "raise".

    Returns:
        Table sorted by time (stable) with the tidy columns plus hour, month,
        mean_temperature, stddev_temperature, temp_anomaly, temp_deviation.

    Raises:
        EmptyWindowError: nothing survives the window and completeness filters.
        UndefinedDeviationError: undefined="raise" and some group has n < 2 or no spread.
    """
    if undefined not in ("keep", "drop", "raise"):
        raise ValueError(f"Unknown undefined-deviation policy: {undefined!r}")

    frame = _as_frame(observations)
    retained = drop_incomplete(filter_window(frame, window_start, window_end))
    if retained.empty:
        raise EmptyWindowError(
            f"No complete observations between {window_start} and {window_end} "
            f"({len(frame)} rows in input)"
        )

    keyed = add_group_keys(retained)
    baselines = compute_baselines(keyed)

    bad_groups = undefined_groups(baselines)
    if bad_groups and undefined == "raise":
        raise UndefinedDeviationError(bad_groups)

    rows = apply_baselines(keyed, baselines)

    if undefined == "drop":
        before = len(rows)
        rows = rows[rows["temp_deviation"].notna()]
        if before != len(rows):
            logger.warning(f"Dropped {before - len(rows)} rows with undefined deviation")
    elif bad_groups:
        logger.warning(f"{len(bad_groups)} group(s) have an undefined deviation")

    rows = rows.sort_values("time", kind="stable").reset_index(drop=True)
    logger.info(
        f"Computed anomalies for {len(rows):,} rows in {len(baselines)} groups "
        f"({len(frame):,} rows in input)"
    )
    return rows


def _native(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def rows_from_frame(frame: pd.DataFrame) -> list[AnalysisRow]:
    """Convert an analysis table back into AnalysisRow records."""
    rows = []
    for record in frame.to_dict("records"):
        record = {k: _native(v) for k, v in record.items()}
        record["time"] = pd.Timestamp(record["time"]).to_pydatetime()
        rows.append(AnalysisRow(**record))
    return rows
