"""Bucket sizes and energy units understood by the Vue chart API."""
from datetime import timedelta
from enum import Enum

from vuesync.core.exceptions import ScaleConfigurationError


class Scale(str, Enum):
    """Aggregation bucket of a usage series."""

    ONE_SECOND = "1S"
    ONE_MINUTE = "1MIN"
    ONE_HOUR = "1H"
    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1MON"
    ONE_YEAR = "1Y"

    def __str__(self) -> str:
        return self.value

    @property
    def duration(self) -> timedelta:
        """Interval covered by one bucket of this scale."""
        try:
            return _SCALE_DURATIONS[self]
        except KeyError:
            raise ScaleConfigurationError(f"Unknown duration for scale {self.value!r}") from None

    @property
    def page_size(self) -> timedelta:
        """Longest interval a single getChartUsage request may span."""
        try:
            return _SCALE_PAGE_SIZES[self]
        except KeyError:
            raise ScaleConfigurationError(f"Unknown page size for scale {self.value!r}") from None

    def validate_for_history(self) -> "Scale":
        """Fail now, rather than mid-export, if history cannot be fetched at this scale."""
        self.duration
        self.page_size
        return self


# Months and years have no fixed length.
_SCALE_DURATIONS = {
    Scale.ONE_SECOND: timedelta(seconds=1),
    Scale.ONE_MINUTE: timedelta(minutes=1),
    Scale.ONE_HOUR: timedelta(hours=1),
    Scale.ONE_DAY: timedelta(days=1),
    Scale.ONE_WEEK: timedelta(weeks=1),
}

_SCALE_PAGE_SIZES = {
    Scale.ONE_SECOND: timedelta(seconds=4000),
    Scale.ONE_MINUTE: timedelta(minutes=800),
    Scale.ONE_HOUR: timedelta(hours=800),
}


class EnergyUnit(str, Enum):
    """Unit the Vue API converts usage into."""

    KILOWATT_HOURS = "KilowattHours"
    AMP_HOURS = "AmpHours"
    DOLLARS = "Dollars"
    TREES = "Trees"
    GALLONS_OF_GAS = "GallonsOfGas"
    MILES_DRIVEN = "MilesDriven"
    CARBON = "Carbon"

    def __str__(self) -> str:
        return self.value


def parse_scale(value: str) -> Scale:
    """Parse a configured scale string, rejecting unknown values immediately."""
    try:
        return Scale(value)
    except ValueError:
        raise ScaleConfigurationError(
            f"Unknown scale {value!r}; expected one of {[s.value for s in Scale]}"
        ) from None
