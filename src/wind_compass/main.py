import json
import logging
import os
import sys
import typing
from pathlib import Path

import structlog
from pydantic import BaseModel

from wind_compass.anomaly import compute_anomalies
from wind_compass.config import Settings, settings
from wind_compass.errors import WindCompassError
from wind_compass.loader import load_station, make_client
from wind_compass.plotting import plot_anomaly_timeseries, plot_wind_compass
from wind_compass.tidy import tidy_observations


# Setup Logging
def setup_logging(config: Settings = settings) -> None:
    """One JSON line per event on stdout and, when log_file is set, in that file."""
    # Shared by structlog events and plain logging records from the library modules
    shared: list[typing.Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        os.makedirs(os.path.dirname(config.log_file) or ".", exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=config.log_level, handlers=handlers, force=True)


logger = structlog.get_logger("WindCompass")


class RunResult(BaseModel):
    """Summary of one analysis run, also written as summary.json."""

    station_id: str
    station_name: str
    raw_rows: int
    analysis_rows: int
    group_count: int
    undefined_deviation_rows: int
    compass_plot: Path
    timeseries_plot: Path
    summary_file: Path


def run(config: Settings = settings) -> RunResult:
    """Run the full pipeline once: lookup, download, tidy, anomalies, plots."""
    logger.info("Starting analysis", station_query=config.station_query)

    with make_client(config.http_timeout) as client:
        station, raw = load_station(
            client,
            config.station_index_url,
            config.station_file_url,
            config.station_query,
            config.data_dir,
        )

    observations = tidy_observations(raw)
    rows = compute_anomalies(
        observations, config.window_start, config.window_end, undefined=config.undefined_deviation
    )

    out_dir = config.output_dir / station.station_id
    title = f"{station.name} ({station.station_id}) {config.window_start:%Y-%m-%d} to {config.window_end:%Y-%m-%d}"
    compass = plot_wind_compass(
        rows, out_dir / "wind_compass.png", jitter_width=config.jitter_width, seed=config.seed, title=title
    )
    timeseries = plot_anomaly_timeseries(rows, out_dir / "anomaly_timeseries.png", title=title)

    result = RunResult(
        station_id=station.station_id,
        station_name=station.name,
        raw_rows=len(observations),
        analysis_rows=len(rows),
        group_count=int(rows[["hour", "month"]].drop_duplicates().shape[0]),
        undefined_deviation_rows=int(rows["temp_deviation"].isna().sum()),
        compass_plot=compass,
        timeseries_plot=timeseries,
        summary_file=out_dir / "summary.json",
    )
    result.summary_file.write_text(json.dumps(result.model_dump(mode="json"), indent=2))

    logger.info("Analysis complete", **result.model_dump(mode="json"))
    return result


def main() -> int:
    try:
        setup_logging()
    except Exception as e:
        logger.exception(f"Startup failed: {e}")
        return 1

    try:
        run()
    except WindCompassError as e:
        logger.error(f"Analysis aborted: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Analysis failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
