"""Configuration structures for the engine, loadable from mappings or TOML files."""

from __future__ import annotations

import math
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone, tzinfo
from os import PathLike
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .common import PhaseId

__all__ = [
    "ENGINE_NAME",
    "VERSION",
    "ClockResolution",
    "PhaseConfig",
    "Holiday",
    "GongConfig",
    "HyperclockConfig",
    "load_config",
]

ENGINE_NAME = "[ HYPER_ENGINE ]"
VERSION = "0.3.1"

_PRESETS = {"ultra": 120, "high": 60, "medium": 30, "low": 1}


@dataclass(frozen=True)
class ClockResolution:
    """The tick speed of the system clock: a named preset or a custom rate."""

    name: str
    ticks_per_second: int

    def __post_init__(self) -> None:
        tps = self.ticks_per_second
        if isinstance(tps, bool) or not isinstance(tps, int):
            raise TypeError(f"ticks_per_second must be an integer, got {tps!r}")
        if self.name in _PRESETS:
            if tps != _PRESETS[self.name]:
                raise ValueError(f"resolution {self.name!r} runs at {_PRESETS[self.name]} ticks per second")
        elif self.name == "custom":
            if tps < 0:
                raise ValueError("ticks_per_second must not be negative")
        else:
            raise ValueError(f"unknown clock resolution {self.name!r}")

    @classmethod
    def ultra(cls) -> ClockResolution:
        """About 120 ticks per second."""
        return cls("ultra", _PRESETS["ultra"])

    @classmethod
    def high(cls) -> ClockResolution:
        """About 60 ticks per second."""
        return cls("high", _PRESETS["high"])

    @classmethod
    def medium(cls) -> ClockResolution:
        """About 30 ticks per second."""
        return cls("medium", _PRESETS["medium"])

    @classmethod
    def low(cls) -> ClockResolution:
        """About 1 tick per second."""
        return cls("low", _PRESETS["low"])

    @classmethod
    def custom(cls, ticks_per_second: int) -> ClockResolution:
        """A user-defined rate in ticks per second."""
        return cls("custom", ticks_per_second)

    @classmethod
    def parse(cls, value: Any) -> ClockResolution:
        """Build a resolution from ``"low"``-style names or ``{"custom": {...}}``."""
        if isinstance(value, ClockResolution):
            return value
        if isinstance(value, str):
            if value in _PRESETS:
                return cls(value, _PRESETS[value])
            raise ValueError(f"unknown clock resolution {value!r}")
        if isinstance(value, Mapping) and set(value) == {"custom"}:
            body = value["custom"]
            if not isinstance(body, Mapping) or "ticks_per_second" not in body:
                raise ValueError("custom resolution needs 'ticks_per_second'")
            try:
                return cls.custom(body["ticks_per_second"])
            except TypeError as exc:
                raise ValueError(str(exc)) from exc
        raise ValueError(f"invalid clock resolution {value!r}")

    def to_duration(self) -> float:
        """Seconds between ticks; infinite when the rate is zero."""
        if self.ticks_per_second == 0:
            return math.inf
        return 1.0 / self.ticks_per_second

    def __str__(self) -> str:
        if self.name == "custom":
            return f"Custom {{ ticks_per_second: {self.ticks_per_second} }}"
        return self.name.capitalize()


@dataclass(frozen=True)
class PhaseConfig:
    """One phase of the engine's cycle."""

    id: PhaseId
    label: str


@dataclass(frozen=True)
class Holiday:
    """A named calendar date the gong watcher announces."""

    name: str
    date: date


def _parse_timezone(value: Any) -> tzinfo:
    if isinstance(value, tzinfo):
        return value
    if not isinstance(value, str):
        raise ValueError(f"timezone must be a string, got {value!r}")
    if value == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone {value!r}") from exc


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        raise ValueError(f"expected a date without a time, got {value!r}")
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"invalid date {value!r}")


def _parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        return time.fromisoformat(value)
    raise ValueError(f"invalid time {value!r}")


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a table, got {data!r}")
    return data


@dataclass
class GongConfig:
    """Settings for calendar-based gong events."""

    timezone: tzinfo = timezone.utc
    holidays: list[Holiday] = field(default_factory=list)
    workday_milestones: list[time] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GongConfig:
        """Build a gong configuration from a mapping, filling in defaults."""
        data = _as_mapping(data, "gong_config")
        holidays = [
            Holiday(str(_require(entry, "name")), _parse_date(_require(entry, "date")))
            for entry in (_as_mapping(h, "holiday") for h in data.get("holidays", []))
        ]
        milestones = [_parse_time(t) for t in data.get("workday_milestones", [])]
        tz = _parse_timezone(data["timezone"]) if "timezone" in data else timezone.utc
        return cls(timezone=tz, holidays=holidays, workday_milestones=milestones)


def _default_phases() -> list[PhaseConfig]:
    return [PhaseConfig(PhaseId(0), "default_phase")]


def _parse_phase(data: Any) -> PhaseConfig:
    data = _as_mapping(data, "phase")
    raw_id = _require(data, "id")
    try:
        phase_id = PhaseId(raw_id)
    except TypeError as exc:
        raise ValueError(str(exc)) from exc
    return PhaseConfig(phase_id, str(_require(data, "label")))


@dataclass
class HyperclockConfig:
    """Top-level engine settings: clock speed, phase sequence and gong settings."""

    resolution: ClockResolution
    phases: list[PhaseConfig] = field(default_factory=_default_phases)
    gong_config: GongConfig = field(default_factory=GongConfig)

    @classmethod
    def default(cls) -> HyperclockConfig:
        """A low-resolution configuration with a single phase."""
        return cls(
            resolution=ClockResolution.low(),
            phases=[PhaseConfig(PhaseId(0), "default")],
            gong_config=GongConfig(),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HyperclockConfig:
        """Build a configuration from a mapping such as a parsed TOML document."""
        data = _as_mapping(data, "configuration")
        resolution = ClockResolution.parse(_require(data, "resolution"))
        phases = (
            [_parse_phase(p) for p in data["phases"]] if "phases" in data else _default_phases()
        )
        gong = GongConfig.from_dict(data.get("gong_config", {}))
        return cls(resolution=resolution, phases=phases, gong_config=gong)


def load_config(path: str | PathLike[str]) -> HyperclockConfig:
    """Read a TOML configuration file."""
    with open(path, "rb") as handle:
        data = tomllib.load(handle)
    return HyperclockConfig.from_dict(data)