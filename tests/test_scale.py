from datetime import timedelta

import pytest

from vuesync.core.exceptions import ScaleConfigurationError
from vuesync.domain.entities.scale import EnergyUnit, Scale, parse_scale


@pytest.mark.parametrize(
    "scale,duration",
    [
        (Scale.ONE_SECOND, timedelta(seconds=1)),
        (Scale.ONE_MINUTE, timedelta(seconds=60)),
        (Scale.ONE_HOUR, timedelta(seconds=3600)),
        (Scale.ONE_DAY, timedelta(seconds=86400)),
        (Scale.ONE_WEEK, timedelta(days=7)),
    ],
)
def test_scale_durations(scale, duration):
    assert scale.duration == duration


def test_page_sizes():
    assert Scale.ONE_SECOND.page_size == timedelta(seconds=4000)
    assert Scale.ONE_MINUTE.page_size == timedelta(minutes=800)
    assert Scale.ONE_HOUR.page_size == timedelta(hours=800)


@pytest.mark.parametrize("scale", [Scale.ONE_MONTH, Scale.ONE_YEAR])
def test_calendar_scales_have_no_duration(scale):
    with pytest.raises(ScaleConfigurationError):
        scale.duration


@pytest.mark.parametrize("scale", [Scale.ONE_DAY, Scale.ONE_WEEK, Scale.ONE_MONTH])
def test_history_needs_a_page_size(scale):
    with pytest.raises(ScaleConfigurationError):
        scale.validate_for_history()


def test_parse_scale():
    assert parse_scale("1MIN") is Scale.ONE_MINUTE
    with pytest.raises(ScaleConfigurationError):
        parse_scale("5MIN")


def test_wire_spelling():
    assert str(Scale.ONE_MINUTE) == "1MIN"
    assert str(EnergyUnit.KILOWATT_HOURS) == "KilowattHours"
