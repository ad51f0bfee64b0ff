import logging
from pathlib import Path

import matplotlib
import numpy as np
import pandas as pd

matplotlib.use("Agg")  # Non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.colors import TwoSlopeNorm

from wind_compass.jitter import jitter_directions

logger = logging.getLogger(__name__)

UNDEFINED_COLOR = "lightgrey"


def _deviation_norm(values: pd.Series) -> TwoSlopeNorm:
    # Symmetric around zero
    limit = float(np.nanmax(np.abs(values))) if values.notna().any() else 1.0
    limit = limit if limit > 0 else 1.0
    return TwoSlopeNorm(vmin=-limit, vcenter=0.0, vmax=limit)


def plot_wind_compass(
    rows: pd.DataFrame,
    path: Path,
    jitter_width: float = 5.0,
    seed: int | None = None,
    title: str | None = None,
) -> Path:
    """
    Polar scatter of wind speed against (jittered) wind direction,
    colored by standardized temperature deviation. North is up, clockwise.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    jittered = jitter_directions(rows, jitter_width, seed=seed)

    theta = np.radians(jittered["wind_direction_jittered"].to_numpy())
    radius = jittered["wind_speed"].to_numpy()
    deviation = jittered["temp_deviation"]
    defined = deviation.notna().to_numpy()

    fig, ax = plt.subplots(figsize=(8, 8), subplot_kw={"projection": "polar"})
    try:
        ax.set_theta_zero_location("N")
        ax.set_theta_direction(-1)

        if (~defined).any():
            ax.scatter(theta[~defined], radius[~defined], s=4, c=UNDEFINED_COLOR, alpha=0.5, label="undefined")
        points = ax.scatter(
            theta[defined],
            radius[defined],
            s=4,
            c=deviation[defined].to_numpy(),
            cmap="RdBu_r",
            norm=_deviation_norm(deviation),
            alpha=0.6,
        )
        fig.colorbar(points, ax=ax, pad=0.1, shrink=0.8, label="Temperature deviation (z)")
        ax.set_title(title or "Wind compass colored by temperature anomaly")

        fig.savefig(path, dpi=120)
    finally:
        plt.close(fig)

    logger.info(f"Wrote wind compass plot to {path}")
    return path


def plot_anomaly_timeseries(rows: pd.DataFrame, path: Path, title: str | None = None) -> Path:
    """Scatter of temperature anomaly over time."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(12, 4))
    try:
        ax.scatter(rows["time"], rows["temp_anomaly"], s=2, c=rows["temp_anomaly"], cmap="RdBu_r")
        ax.axhline(0.0, color="black", linewidth=0.8)
        ax.set_xlabel("Time")
        ax.set_ylabel("Temperature anomaly")
        ax.set_title(title or "Temperature anomaly vs. (hour, month) baseline")
        fig.autofmt_xdate()
        fig.tight_layout()

        fig.savefig(path, dpi=120)
    finally:
        plt.close(fig)

    logger.info(f"Wrote anomaly time series plot to {path}")
    return path
