class WindCompassError(Exception):
    """Base class for all errors raised by wind_compass."""


class InputShapeError(WindCompassError):
    """Raw arrays handed to the tidying stage do not line up."""


class EmptyWindowError(WindCompassError):
    """No observation survived the window and completeness filters."""


class InsufficientGroupError(WindCompassError):
    """A (hour, month) group has no members to build a baseline from."""

    def __init__(self, hour: int, month: int) -> None:
        self.hour = hour
        self.month = month
        super().__init__(f"No observations for group hour={hour} month={month}")


class UndefinedDeviationError(WindCompassError):
    """A group baseline has fewer than two members or zero spread."""

    def __init__(self, groups: list[tuple[int, int]]) -> None:
        self.groups = groups
        super().__init__(f"Standard deviation undefined for {len(groups)} group(s): {groups[:10]}")


class MalformedStationSelectionError(WindCompassError):
    """A station lookup matched zero or several stations."""

    def __init__(self, query: str, candidates: list[str]) -> None:
        self.query = query
        self.candidates = candidates
        if candidates:
            msg = f"Station query {query!r} is ambiguous, {len(candidates)} matches: {candidates[:10]}"
        else:
            msg = f"Station query {query!r} matched no station"
        super().__init__(msg)


class StationFileError(WindCompassError):
    """The downloaded observation file cannot be read."""
