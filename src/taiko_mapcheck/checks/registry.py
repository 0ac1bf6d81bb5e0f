"""Static table of every check, in report order."""

from __future__ import annotations

from taiko_mapcheck.checks.base import CheckInfo, Scope, covered_tiers
from taiko_mapcheck.checks.compose import (
    check_mapset_pattern_lengths,
    check_rest_moments,
    check_smallest_snap,
    check_spinner_readability,
    check_unrankable_finishers,
)
from taiko_mapcheck.checks.mapset import check_bg_offset_consistency, check_kiai_consistency
from taiko_mapcheck.checks.settings import check_hp_od, hp_od_tiers
from taiko_mapcheck.checks.timing import (
    check_barline_unaffected_by_sv,
    check_conflicting_kiais,
    check_double_barlines,
    check_first_note,
    check_kiai_flash,
    check_last_note_barline,
)
from taiko_mapcheck.config import CheckConfig
from taiko_mapcheck.data.beatmap import Difficulty


def _rest_tiers(config: CheckConfig) -> tuple[Difficulty, ...]:
    return covered_tiers(config.rest_moments)


def _pattern_tiers(config: CheckConfig) -> tuple[Difficulty, ...]:
    return covered_tiers(config.pattern_lengths)


def _snap_tiers(config: CheckConfig) -> tuple[Difficulty, ...]:
    return covered_tiers(config.smallest_snap_divisors)


def _spinner_tiers(config: CheckConfig) -> tuple[Difficulty, ...]:
    return covered_tiers(config.spinner_gap_divisors)


def _finisher_tiers(config: CheckConfig) -> tuple[Difficulty, ...]:
    return covered_tiers(config.finishers)


REGISTRY: tuple[CheckInfo, ...] = (
    # Compose
    CheckInfo(
        name="rest_moments",
        category="Compose",
        message="Missing rest moments",
        scope=Scope.BEATMAP,
        tiers=_rest_tiers,
        run=check_rest_moments,
    ),
    CheckInfo(
        name="pattern_lengths",
        category="Compose",
        message="Overly long patterns",
        scope=Scope.MAPSET,
        tiers=_pattern_tiers,
        run=check_mapset_pattern_lengths,
    ),
    CheckInfo(
        name="smallest_snap",
        category="Compose",
        message="Snap tighter than the difficulty allows",
        scope=Scope.BEATMAP,
        tiers=_snap_tiers,
        run=check_smallest_snap,
    ),
    CheckInfo(
        name="spinner_readability",
        category="Compose",
        message="Spinner too close to the previous object",
        scope=Scope.BEATMAP,
        tiers=_spinner_tiers,
        run=check_spinner_readability,
    ),
    CheckInfo(
        name="unrankable_finishers",
        category="Compose",
        message="Unrankable finishers",
        scope=Scope.BEATMAP,
        tiers=_finisher_tiers,
        run=check_unrankable_finishers,
    ),
    # Timing
    CheckInfo(
        name="double_barlines",
        category="Timing",
        message="Double barlines",
        scope=Scope.BEATMAP,
        run=check_double_barlines,
    ),
    CheckInfo(
        name="barline_unaffected_by_sv",
        category="Timing",
        message="Barline unaffected by SV change",
        scope=Scope.BEATMAP,
        run=check_barline_unaffected_by_sv,
    ),
    CheckInfo(
        name="last_note_barline",
        category="Timing",
        message="Last note hiding the final barline",
        scope=Scope.BEATMAP,
        run=check_last_note_barline,
    ),
    CheckInfo(
        name="conflicting_kiais",
        category="Timing",
        message="Conflicting kiai on concurrent timing points",
        scope=Scope.BEATMAP,
        run=check_conflicting_kiais,
    ),
    CheckInfo(
        name="kiai_flash",
        category="Timing",
        message="Kiai flashing",
        scope=Scope.BEATMAP,
        run=check_kiai_flash,
    ),
    CheckInfo(
        name="first_note",
        category="Timing",
        message="First note too early",
        scope=Scope.BEATMAP,
        run=check_first_note,
    ),
    CheckInfo(
        name="kiai_consistency",
        category="Timing",
        message="Kiai inconsistent across difficulties",
        scope=Scope.MAPSET,
        run=check_kiai_consistency,
    ),
    # Settings
    CheckInfo(
        name="hp_od",
        category="Settings",
        message="HP/OD differ from recommended values",
        scope=Scope.BEATMAP,
        tiers=hp_od_tiers,
        run=check_hp_od,
    ),
    # Design
    CheckInfo(
        name="bg_offset_consistency",
        category="Design",
        message="Background offset inconsistent across difficulties",
        scope=Scope.MAPSET,
        run=check_bg_offset_consistency,
    ),
)

_BY_NAME = {info.name: info for info in REGISTRY}


def get_check(name: str) -> CheckInfo:
    """Look a check up by registry name.

    Raises:
        KeyError: If no check has that name.
    """
    try:
        return _BY_NAME[name]
    except KeyError:
        raise KeyError(f"Unknown check {name!r}; known: {', '.join(_BY_NAME)}") from None
