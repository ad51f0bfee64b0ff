import typing

import numpy as np
import pandas as pd

FULL_CIRCLE = 360.0


def wrap_degrees(angle: typing.Any) -> typing.Any:
    """Reduce angles into [0, 360). Never negative, never exactly 360."""
    wrapped = np.mod(angle, FULL_CIRCLE)
    # np.mod of a tiny negative value can round up to exactly 360.0
    wrapped = np.where(wrapped >= FULL_CIRCLE, 0.0, wrapped)
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


def jitter_angle(
    angle_degrees: typing.Any,
    width_degrees: float,
    rng: np.random.Generator | None = None,
) -> typing.Any:
    """
    Add a uniform random offset in [-width, +width] to an angle (scalar or array)
    and wrap the result into [0, 360).

    The noise is symmetric so the circular mean is not biased in aggregate.
    Pass a seeded Generator for reproducible output.
    """
    if width_degrees < 0:
        raise ValueError("width_degrees must be non-negative")
    if rng is None:
        rng = np.random.default_rng()

    angles = np.asarray(angle_degrees, dtype="float64")
    # uniform() is half-open; one ulp above width makes the draw [-width, +width]
    high = np.nextafter(width_degrees, np.inf)
    offset = rng.uniform(-width_degrees, high, size=angles.shape)
    return wrap_degrees(angles + offset)


def jitter_directions(frame: pd.DataFrame, width_degrees: float, seed: int | None = None) -> pd.DataFrame:
    """Return a copy of the table with a wind_direction_jittered column."""
    rng = np.random.default_rng(seed)
    jittered = jitter_angle(frame["wind_direction"].to_numpy(), width_degrees, rng=rng)
    return frame.assign(wind_direction_jittered=np.atleast_1d(jittered))
