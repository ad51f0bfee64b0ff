from .anomaly import (
    apply_baselines,
    baseline_for,
    compute_anomalies,
    compute_baselines,
    frame_from_observations,
    rows_from_frame,
)
from .errors import (
    EmptyWindowError,
    InputShapeError,
    InsufficientGroupError,
    MalformedStationSelectionError,
    StationFileError,
    UndefinedDeviationError,
    WindCompassError,
)
from .jitter import jitter_angle, jitter_directions
from .models import AnalysisRow, GroupBaseline, GroupKey, Observation, RawStationData, VariableSentinels
from .tidy import tidy_observations

__all__ = [
    "AnalysisRow",
    "EmptyWindowError",
    "GroupBaseline",
    "GroupKey",
    "InputShapeError",
    "InsufficientGroupError",
    "MalformedStationSelectionError",
    "Observation",
    "RawStationData",
    "StationFileError",
    "UndefinedDeviationError",
    "VariableSentinels",
    "WindCompassError",
    "apply_baselines",
    "baseline_for",
    "compute_anomalies",
    "compute_baselines",
    "frame_from_observations",
    "jitter_angle",
    "jitter_directions",
    "rows_from_frame",
    "tidy_observations",
]
