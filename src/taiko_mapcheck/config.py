"""Check configuration: shared tolerances and per-tier threshold tables.

One frozen ``CheckConfig`` is built per run and handed to every check.
Defaults follow the osu!taiko ranking criteria; a YAML file can override
any of them. Per-tier tables are keyed by the tier value ("kantan",
"inner_oni", ...).

Example override file (check.yaml):

    timing:
      ms_epsilon: 0.5
    rest_moments:
      oni:
        label: "1/1"
        rules: [{gap_count: 1, min_beats: 1.0}]
        minor_beats: 25
        warning_beats: 36
"""

from __future__ import annotations

import logging
from fractions import Fraction
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from taiko_mapcheck.data.beatmap import Difficulty

logger = logging.getLogger(__name__)

IssueLevel = Literal["minor", "warning", "problem"]

TIER_KEYS = frozenset(d.value for d in Difficulty)


def snap_fraction(label: str) -> float:
    """Convert a snap label such as "1/4" or "3/2" to beats."""
    try:
        value = Fraction(label.strip())
    except (ValueError, ZeroDivisionError):
        raise ValueError(f"Invalid snap label: {label!r}") from None
    if value <= 0:
        raise ValueError(f"Invalid snap label: {label!r}")
    return float(value)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ---------------------------------------------------------------------------
# Shared timing tolerances
# ---------------------------------------------------------------------------


class TimingConfig(_Frozen):
    """Epsilons and the BPM band tempos are folded into."""

    ms_epsilon: float = Field(default=1.0, ge=0, description="Slack for every gap comparison.")
    rounding_error_margin: float = Field(default=1.0, ge=0)
    min_bpm: float = Field(default=110.0, gt=0)
    max_bpm: float = Field(default=270.0, gt=0)
    triplet_bpm: float = Field(default=130.0, gt=0, description="Fold by 1.5 at or below this.")


# ---------------------------------------------------------------------------
# Compose checks
# ---------------------------------------------------------------------------


class RestRule(_Frozen):
    """``gap_count`` consecutive gaps of at least ``min_beats`` each form a rest."""

    gap_count: int = Field(default=1, ge=1)
    min_beats: float = Field(default=1.0, gt=0)


class RestMomentTier(_Frozen):
    label: str = "1/1"
    rules: list[RestRule] = Field(default_factory=lambda: [RestRule()])
    minor_beats: int = 21
    warning_beats: int = 32


def _default_rest_moments() -> dict[str, RestMomentTier]:
    return {
        "kantan": RestMomentTier(
            label="3/1",
            rules=[RestRule(gap_count=1, min_beats=3.0)],
            minor_beats=37,
            warning_beats=45,
        ),
        "futsuu": RestMomentTier(
            label="2/1",
            rules=[RestRule(gap_count=1, min_beats=2.0)],
            minor_beats=37,
            warning_beats=45,
        ),
        "muzukashii": RestMomentTier(
            label="3/2 or 3x1/1",
            rules=[RestRule(gap_count=1, min_beats=1.5), RestRule(gap_count=3, min_beats=1.0)],
            minor_beats=21,
            warning_beats=32,
        ),
        "oni": RestMomentTier(
            label="1/1",
            rules=[RestRule(gap_count=1, min_beats=1.0)],
            minor_beats=21,
            warning_beats=32,
        ),
    }


class PatternLengthTier(_Frozen):
    """Longest allowed run of notes per snap, keyed by snap label ("1/4")."""

    limits: dict[str, int] = Field(default_factory=dict)
    # applied on top of ``limits`` when the set has no kantan
    limits_without_kantan: dict[str, int] = Field(default_factory=dict)

    @field_validator("limits", "limits_without_kantan")
    @classmethod
    def validate_snap_labels(cls, value: dict[str, int]) -> dict[str, int]:
        for label in value:
            snap_fraction(label)
        return value


def _default_pattern_lengths() -> dict[str, PatternLengthTier]:
    return {
        "kantan": PatternLengthTier(limits={"1/1": 7, "1/2": 2}),
        "futsuu": PatternLengthTier(
            limits={"1/2": 7, "1/3": 2}, limits_without_kantan={"1/2": 5}
        ),
        "muzukashii": PatternLengthTier(limits={"1/4": 5, "1/6": 4}),
        "oni": PatternLengthTier(limits={"1/4": 9, "1/6": 4, "1/8": 2}),
    }


class FinisherTier(_Frozen):
    """Issue level per finisher condition; None disables the condition."""

    gap_divisor: float = Field(default=4.0, gt=0)
    next_gap: IssueLevel | None = "problem"
    previous_gap: IssueLevel | None = "problem"
    mid_pattern: IssueLevel | None = None
    same_color: IssueLevel | None = None


def _default_finishers() -> dict[str, FinisherTier]:
    return {
        "kantan": FinisherTier(gap_divisor=2.0, mid_pattern="problem"),
        "futsuu": FinisherTier(gap_divisor=3.0, mid_pattern="problem"),
        "muzukashii": FinisherTier(gap_divisor=3.0, mid_pattern="warning", same_color="warning"),
        "oni": FinisherTier(
            gap_divisor=4.0,
            previous_gap="warning",
            mid_pattern="warning",
            same_color="warning",
        ),
        "inner_oni": FinisherTier(gap_divisor=4.0, next_gap="warning", previous_gap=None),
        "ura": FinisherTier(gap_divisor=4.0, next_gap="warning", previous_gap=None),
    }


# ---------------------------------------------------------------------------
# Timing and settings checks
# ---------------------------------------------------------------------------


class DoubleBarlineConfig(_Frozen):
    threshold_ms: float = 50.0
    exact_floor_ms: float = 0.5  # remainders below this are only warnings


class KiaiFlashConfig(_Frozen):
    warning_divisor: float = Field(default=2.5, gt=0)
    minor_divisor: float = Field(default=2.0, gt=0)


class FirstNoteConfig(_Frozen):
    limit_ms: int = 150
    recommended_ms: int = 200


class LastNoteConfig(_Frozen):
    # unsnap window before the next barline, (lower, upper]
    lower_ms: float = -2.0
    upper_ms: float = -1.0


class SettingsConfig(_Frozen):
    recommended_od: dict[str, float] = Field(
        default_factory=lambda: {"kantan": 3.0, "futsuu": 4.0, "muzukashii": 5.0, "oni": 5.5}
    )
    recommended_hp: dict[str, float] = Field(
        default_factory=lambda: {"kantan": 8.0, "futsuu": 7.0, "muzukashii": 6.0, "oni": 5.5}
    )
    hp_warning_delta: float = 1.0
    od_warning_delta: float = 0.5
    short_drain_ms: float = 60_000.0  # 1:00 or less, HP +1
    long_drain_ms: float = 225_000.0  # 3:45 or more, HP -1
    very_long_drain_ms: float = 285_000.0  # 4:45 or more, HP -2


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class CheckConfig(_Frozen):
    timing: TimingConfig = Field(default_factory=TimingConfig)
    rest_moments: dict[str, RestMomentTier] = Field(default_factory=_default_rest_moments)
    pattern_lengths: dict[str, PatternLengthTier] = Field(default_factory=_default_pattern_lengths)
    smallest_snap_divisors: dict[str, float] = Field(
        default_factory=lambda: {"kantan": 2.0, "futsuu": 3.0, "muzukashii": 6.0, "oni": 8.0}
    )
    spinner_gap_divisors: dict[str, float] = Field(
        default_factory=lambda: {
            "kantan": 2.0,
            "futsuu": 2.0,
            "muzukashii": 2.0,
            "oni": 4.0,
            "inner_oni": 4.0,
            "ura": 4.0,
        }
    )
    finishers: dict[str, FinisherTier] = Field(default_factory=_default_finishers)
    double_barline: DoubleBarlineConfig = Field(default_factory=DoubleBarlineConfig)
    kiai_flash: KiaiFlashConfig = Field(default_factory=KiaiFlashConfig)
    first_note: FirstNoteConfig = Field(default_factory=FirstNoteConfig)
    last_note: LastNoteConfig = Field(default_factory=LastNoteConfig)
    settings: SettingsConfig = Field(default_factory=SettingsConfig)
    sv_unsnap_ms: float = 1.0

    @model_validator(mode="after")
    def validate_tier_keys(self) -> CheckConfig:
        tables = {
            "rest_moments": self.rest_moments,
            "pattern_lengths": self.pattern_lengths,
            "smallest_snap_divisors": self.smallest_snap_divisors,
            "spinner_gap_divisors": self.spinner_gap_divisors,
            "finishers": self.finishers,
            "settings.recommended_od": self.settings.recommended_od,
            "settings.recommended_hp": self.settings.recommended_hp,
        }
        for name, table in tables.items():
            unknown = set(table) - TIER_KEYS
            if unknown:
                raise ValueError(f"{name}: unknown tiers {sorted(unknown)}")
        return self


DEFAULT_CONFIG = CheckConfig()


def config_from_dict(overrides: dict[str, Any] | None) -> CheckConfig:
    """Merge user overrides onto the defaults and validate them.

    Top-level sections are merged key by key, so overriding one tier of a
    table keeps the others; everything below a tier is replaced.

    Args:
        overrides: Nested dict as found in the YAML file, or None.

    Returns:
        A frozen CheckConfig.

    Raises:
        ValueError: If a key is unknown or a value fails validation.
    """
    if not overrides:
        return DEFAULT_CONFIG

    merged = DEFAULT_CONFIG.model_dump()
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value

    try:
        return CheckConfig.model_validate(merged)
    except ValidationError as exception:
        raise ValueError(f"Invalid check config: {exception}") from exception


def load_config(path: Path | str | None = None) -> CheckConfig:
    """Load a CheckConfig from a YAML file, or return the defaults.

    Args:
        path: Optional YAML file whose keys override the defaults.

    Returns:
        A frozen CheckConfig.
    """
    if path is None:
        return DEFAULT_CONFIG

    path = Path(path)
    logger.info("Loading check config from %s", path)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return DEFAULT_CONFIG
    if not isinstance(data, dict):
        raise ValueError(f"Config file root must be a mapping: {path}")
    return config_from_dict(data)
