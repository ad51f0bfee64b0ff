"""
Station directory lookup, download and reading of netCDF observation files.

Station directory lines look like:
    037720-99999 LONDON/HEATHROW 51.478 -0.461 25.3
"""

import gzip
import logging
import re
from pathlib import Path

import httpx
import netCDF4
import numpy as np
import pandas as pd

from wind_compass.errors import MalformedStationSelectionError, StationFileError
from wind_compass.models import RawStationData, StationInfo, VariableSentinels

logger = logging.getLogger(__name__)

USER_AGENT = "wind-compass/0.1"

# netCDF variable names in the station file
TIME_VAR = "time"
TEMPERATURE_VAR = "temperatures"
WIND_SPEED_VAR = "windspeeds"
WIND_DIRECTION_VAR = "winddirs"

_TIME_UNITS = re.compile(r"^\s*hours\s+since\s+(?P<epoch>.+?)\s*$", re.IGNORECASE)


# ─── Station Directory ───────────────────────────────────────────────────────


def parse_station_index(text: str) -> list[StationInfo]:
    """Parse the whitespace separated station directory. Bad lines are skipped."""
    stations = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        parts = line.split()
        if not parts:
            continue
        if len(parts) < 5:
            logger.warning(f"Skipping short station line {lineno}: {line!r}")
            continue
        try:
            stations.append(
                StationInfo(
                    station_id=parts[0],
                    name=" ".join(parts[1:-3]),
                    latitude=float(parts[-3]),
                    longitude=float(parts[-2]),
                    elevation=float(parts[-1]),
                )
            )
        except ValueError as e:
            # pydantic.ValidationError is a ValueError too
            logger.warning(f"Skipping unparseable station line {lineno}: {e}")
    return stations


def select_station(stations: list[StationInfo], query: str) -> StationInfo:
    """
    Pick exactly one station: exact id match first, then case-insensitive
    substring match on the name. Raises MalformedStationSelectionError otherwise.
    """
    by_id = [s for s in stations if s.station_id == query]
    if len(by_id) == 1:
        return by_id[0]
    if len(by_id) > 1:
        raise MalformedStationSelectionError(query, [f"{s.station_id} {s.name}" for s in by_id])

    needle = query.strip().lower()
    matches = [s for s in stations if needle and needle in s.name.lower()]
    if len(matches) != 1:
        raise MalformedStationSelectionError(
            query, [f"{s.station_id} {s.name}" for s in matches]
        )
    return matches[0]


def fetch_station_index(client: httpx.Client, url: str) -> list[StationInfo]:
    """Download and parse the station directory."""
    logger.info(f"Fetching station directory from {url}")
    response = client.get(url)
    response.raise_for_status()
    stations = parse_station_index(response.text)
    logger.info(f"Station directory lists {len(stations)} stations")
    return stations


# ─── Download ────────────────────────────────────────────────────────────────


def download_station_file(client: httpx.Client, url: str, dest: Path) -> Path:
    """Download one station file to dest, reusing a non-empty cached copy."""
    if dest.exists() and dest.stat().st_size > 0:
        logger.info(f"Using cached station file {dest} ({dest.stat().st_size:,} bytes)")
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_name(dest.name + ".part")
    logger.info(f"Downloading {url}")
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
        partial.replace(dest)
    finally:
        partial.unlink(missing_ok=True)

    logger.info(f"Saved {dest} ({dest.stat().st_size:,} bytes)")
    return dest


# ─── netCDF Reading ──────────────────────────────────────────────────────────


def parse_time_units(units: str) -> pd.Timestamp:
    """Parse 'hours since <timestamp>' into the epoch timestamp."""
    match = _TIME_UNITS.match(units or "")
    if match is None:
        raise StationFileError(f"Unsupported time units {units!r}, expected 'hours since <epoch>'")
    try:
        return pd.Timestamp(match.group("epoch"))
    except ValueError as e:
        raise StationFileError(f"Cannot parse epoch in time units {units!r}: {e}") from e


def _sentinels(variable: netCDF4.Variable) -> VariableSentinels:
    try:
        return VariableSentinels(
            missing=float(variable.getncattr("missing_value")),
            flagged=float(variable.getncattr("flagged_value")),
        )
    except AttributeError as e:
        raise StationFileError(f"Variable {variable.name!r} lacks sentinel attributes") from e


def _variable(dataset: netCDF4.Dataset, name: str) -> netCDF4.Variable:
    try:
        return dataset.variables[name]
    except KeyError:
        raise StationFileError(f"Station file has no variable {name!r}") from None


def read_station_file(path: Path, station_id: str | None = None) -> RawStationData:
    """
    Read raw arrays and sentinel metadata from a (optionally gzipped) netCDF file.
    Values are returned unmasked; sentinel handling happens in the tidying stage.
    """
    path = Path(path)
    raw_bytes = path.read_bytes()
    if path.suffix == ".gz":
        try:
            raw_bytes = gzip.decompress(raw_bytes)
        except (OSError, EOFError) as e:
            raise StationFileError(f"Cannot decompress {path}: {e}") from e

    try:
        dataset = netCDF4.Dataset(path.stem, mode="r", memory=raw_bytes)
    except OSError as e:
        raise StationFileError(f"Cannot open {path} as netCDF: {e}") from e

    with dataset:
        dataset.set_auto_mask(False)
        time_var = _variable(dataset, TIME_VAR)
        temp_var = _variable(dataset, TEMPERATURE_VAR)
        speed_var = _variable(dataset, WIND_SPEED_VAR)
        dir_var = _variable(dataset, WIND_DIRECTION_VAR)

        epoch = parse_time_units(getattr(time_var, "units", ""))
        raw = RawStationData(
            station_id=station_id,
            epoch=epoch.to_pydatetime(),
            time_offsets=np.asarray(time_var[:]).astype("int64"),
            temperature=np.asarray(temp_var[:], dtype="float64"),
            wind_speed=np.asarray(speed_var[:], dtype="float64"),
            wind_direction=np.asarray(dir_var[:], dtype="float64"),
            temperature_sentinels=_sentinels(temp_var),
            wind_speed_sentinels=_sentinels(speed_var),
            wind_direction_sentinels=_sentinels(dir_var),
        )

    logger.info(f"Read {len(raw.time_offsets):,} raw observations from {path.name}")
    return raw


def load_station(
    client: httpx.Client, index_url: str, file_url_template: str, query: str, data_dir: Path
) -> tuple[StationInfo, RawStationData]:
    """Resolve a station, download its file and read the raw arrays."""
    station = select_station(fetch_station_index(client, index_url), query)
    logger.info(f"Selected station {station.station_id} ({station.name})")
    url = file_url_template.format(station_id=station.station_id)
    dest = data_dir / url.rsplit("/", 1)[-1]
    path = download_station_file(client, url, dest)
    return station, read_station_file(path, station_id=station.station_id)


def make_client(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout, follow_redirects=True, headers={"User-Agent": USER_AGENT})
