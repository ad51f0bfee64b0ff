import json
import logging
from datetime import datetime
from unittest.mock import MagicMock

import numpy as np
import pytest
import structlog
from wind_compass import main
from wind_compass.config import Settings
from wind_compass.errors import EmptyWindowError, MalformedStationSelectionError
from wind_compass.models import RawStationData, StationInfo

STATION = StationInfo(station_id="037720-99999", name="LONDON/HEATHROW", latitude=51.478, longitude=-0.461)


@pytest.fixture
def fake_station(hourly_frame, sentinels, monkeypatch):
    """Replace the network loader with the synthetic hourly data."""
    temperature = hourly_frame["temperature"].to_numpy().copy()
    temperature[5] = sentinels.missing
    raw = RawStationData(
        station_id=STATION.station_id,
        epoch=datetime(2019, 1, 1),
        time_offsets=np.arange(len(hourly_frame)),
        temperature=temperature,
        wind_speed=hourly_frame["wind_speed"].to_numpy(),
        wind_direction=hourly_frame["wind_direction"].to_numpy(),
        temperature_sentinels=sentinels,
        wind_speed_sentinels=sentinels,
        wind_direction_sentinels=sentinels,
    )
    mock_load = MagicMock(return_value=(STATION, raw))
    monkeypatch.setattr("wind_compass.main.load_station", mock_load)
    return mock_load


@pytest.fixture
def config(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        station_query="heathrow",
        data_dir=tmp_path / "data",
        output_dir=tmp_path / "output",
        window_start=datetime(2019, 1, 1),
        window_end=datetime(2020, 1, 1),
        seed=3,
    )


def test_run_end_to_end(fake_station, config, tmp_path) -> None:
    result = main.run(config)

    args = fake_station.call_args[0]
    assert args[3] == "heathrow"
    assert args[4] == tmp_path / "data"

    assert result.station_id == "037720-99999"
    assert result.raw_rows == 2 * 365 * 24 + 24
    # 2019-01-01 00:00 is excluded by the window, hour 5 has a sentinel
    assert result.analysis_rows == 365 * 24 - 2
    assert result.group_count == 24 * 12
    assert result.undefined_deviation_rows == 0
    assert result.compass_plot.exists()
    assert result.timeseries_plot.exists()

    summary = json.loads(result.summary_file.read_text())
    assert summary["analysis_rows"] == result.analysis_rows
    assert result.summary_file.parent == tmp_path / "output" / "037720-99999"


def test_run_propagates_empty_window(fake_station, config) -> None:
    config.window_start = datetime(2030, 1, 1)
    config.window_end = datetime(2031, 1, 1)

    with pytest.raises(EmptyWindowError):
        main.run(config)


def test_main_returns_error_code_on_analysis_error(monkeypatch) -> None:
    monkeypatch.setattr(main, "setup_logging", MagicMock())
    monkeypatch.setattr(main, "run", MagicMock(side_effect=MalformedStationSelectionError("x", [])))

    assert main.main() == 1


def test_main_returns_error_code_on_unexpected_error(monkeypatch) -> None:
    monkeypatch.setattr(main, "setup_logging", MagicMock())
    monkeypatch.setattr(main, "run", MagicMock(side_effect=RuntimeError("boom")))

    assert main.main() == 1


def test_main_success(monkeypatch) -> None:
    monkeypatch.setattr(main, "setup_logging", MagicMock())
    monkeypatch.setattr(main, "run", MagicMock())

    assert main.main() == 0


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def test_setup_logging_writes_json_lines(tmp_path, restore_logging) -> None:
    log_file = tmp_path / "logs" / "wind_compass.log"
    main.setup_logging(Settings(_env_file=None, log_level="INFO", log_file=str(log_file)))

    structlog.get_logger("WindCompass.test").info("Analysis complete", analysis_rows=12)
    logging.getLogger("wind_compass.loader").info("Selected station 037720-99999")
    logging.getLogger("wind_compass.loader").debug("below the configured level")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert len(lines) == 2
    assert lines[0]["event"] == "Analysis complete"
    assert lines[0]["analysis_rows"] == 12
    assert lines[0]["level"] == "info"
    assert lines[0]["logger"] == "WindCompass.test"
    assert lines[1]["event"] == "Selected station 037720-99999"
    assert lines[1]["logger"] == "wind_compass.loader"
    assert "timestamp" in lines[1]
