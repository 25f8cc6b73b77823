import math
from datetime import date, time, timezone

import pytest

from hyperclock.common import PhaseId
from hyperclock.config import (
    ClockResolution,
    GongConfig,
    Holiday,
    HyperclockConfig,
    PhaseConfig,
    load_config,
)


@pytest.mark.parametrize(
    "name, factory, rate",
    [
        ("ultra", ClockResolution.ultra, 120),
        ("high", ClockResolution.high, 60),
        ("medium", ClockResolution.medium, 30),
        ("low", ClockResolution.low, 1),
    ],
)
def test_parse_presets(name, factory, rate):
    parsed = ClockResolution.parse(name)
    assert parsed == factory()
    assert parsed.ticks_per_second == rate


def test_parse_custom_mapping():
    parsed = ClockResolution.parse({"custom": {"ticks_per_second": 7}})
    assert parsed == ClockResolution.custom(7)


@pytest.mark.parametrize("bad", ["Low", "custom", "fast", 5, {"custom": {}}, {"custom": {"ticks_per_second": -1}}])
def test_parse_rejects_invalid(bad):
    with pytest.raises(ValueError):
        ClockResolution.parse(bad)


def test_custom_rejects_negative():
    with pytest.raises(ValueError):
        ClockResolution.custom(-3)


def test_preset_name_must_match_rate():
    with pytest.raises(ValueError):
        ClockResolution("low", 2)


def test_to_duration_low_is_one_second():
    assert ClockResolution.low().to_duration() == 1.0


def test_to_duration_is_reciprocal_of_rate():
    for res in (ClockResolution.ultra(), ClockResolution.high(), ClockResolution.custom(4)):
        assert res.to_duration() * res.ticks_per_second == pytest.approx(1.0)


def test_to_duration_zero_rate_is_infinite():
    duration = ClockResolution.custom(0).to_duration()
    assert duration == math.inf


def test_default_config():
    config = HyperclockConfig.default()
    assert config.resolution == ClockResolution.low()
    assert config.phases == [PhaseConfig(PhaseId(0), "default")]
    assert config.gong_config.timezone == timezone.utc
    assert config.gong_config.holidays == []


def test_from_dict_uses_default_phases():
    config = HyperclockConfig.from_dict({"resolution": "high"})
    assert config.phases == [PhaseConfig(PhaseId(0), "default_phase")]
    assert config.gong_config.workday_milestones == []


def test_from_dict_requires_resolution():
    with pytest.raises(ValueError):
        HyperclockConfig.from_dict({"phases": []})


def test_from_dict_rejects_bad_phase_id():
    with pytest.raises(ValueError):
        HyperclockConfig.from_dict({"resolution": "low", "phases": [{"id": 300, "label": "x"}]})


def test_gong_config_from_dict():
    gong = GongConfig.from_dict(
        {
            "timezone": "UTC",
            "holidays": [{"name": "Launch", "date": "2026-01-01"}],
            "workday_milestones": ["09:30:00"],
        }
    )
    assert gong.timezone == timezone.utc
    assert gong.holidays == [Holiday("Launch", date(2026, 1, 1))]
    assert gong.workday_milestones == [time(9, 30)]


def test_gong_config_unknown_timezone():
    with pytest.raises(ValueError):
        GongConfig.from_dict({"timezone": "Not/AZone"})


def test_load_config_from_toml(tmp_path):
    path = tmp_path / "engine.toml"
    path.write_text(
        """
resolution = "medium"

[[phases]]
id = 0
label = "logic"

[[phases]]
id = 1
label = "rendering"

[gong_config]
timezone = "UTC"
workday_milestones = ["09:00:00"]

[[gong_config.holidays]]
name = "New Year's Day"
date = 2026-01-01
""",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.resolution == ClockResolution.medium()
    assert [p.label for p in config.phases] == ["logic", "rendering"]
    assert [p.id for p in config.phases] == [PhaseId(0), PhaseId(1)]
    assert config.gong_config.holidays == [Holiday("New Year's Day", date(2026, 1, 1))]
    assert config.gong_config.workday_milestones == [time(9, 0)]


def test_load_config_custom_resolution(tmp_path):
    path = tmp_path / "engine.toml"
    path.write_text("resolution = { custom = { ticks_per_second = 10 } }\n", encoding="utf-8")
    assert load_config(path).resolution == ClockResolution.custom(10)


def test_load_config_rejects_datetime_for_holiday(tmp_path):
    path = tmp_path / "engine.toml"
    path.write_text(
        'resolution = "low"\n[[gong_config.holidays]]\nname = "x"\ndate = 2026-01-01T10:00:00\n',
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        load_config(path)