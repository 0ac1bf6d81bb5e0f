"""Beatmap checks, their registry and the runner that executes them."""

from taiko_mapcheck.checks.base import (
    CheckInfo,
    Issue,
    Scope,
    Severity,
    Timestamp,
    format_time,
    select_difficulties,
)
from taiko_mapcheck.checks.compose import (
    check_mapset_pattern_lengths,
    check_pattern_lengths,
    check_rest_moments,
    check_smallest_snap,
    check_spinner_readability,
    check_unrankable_finishers,
)
from taiko_mapcheck.checks.mapset import check_bg_offset_consistency, check_kiai_consistency
from taiko_mapcheck.checks.registry import REGISTRY, get_check
from taiko_mapcheck.checks.runner import (
    CheckFailure,
    CheckRun,
    run_all,
    run_beatmap_checks,
    run_mapset_checks,
)
from taiko_mapcheck.checks.settings import check_hp_od, normalize_hp_with_drain
from taiko_mapcheck.checks.timing import (
    check_barline_unaffected_by_sv,
    check_conflicting_kiais,
    check_double_barlines,
    check_first_note,
    check_kiai_flash,
    check_last_note_barline,
)

__all__ = [
    # Issues
    "CheckInfo",
    "Issue",
    "Scope",
    "Severity",
    "Timestamp",
    "format_time",
    "select_difficulties",
    # Compose
    "check_mapset_pattern_lengths",
    "check_pattern_lengths",
    "check_rest_moments",
    "check_smallest_snap",
    "check_spinner_readability",
    "check_unrankable_finishers",
    # Timing
    "check_barline_unaffected_by_sv",
    "check_conflicting_kiais",
    "check_double_barlines",
    "check_first_note",
    "check_kiai_flash",
    "check_last_note_barline",
    # Settings
    "check_hp_od",
    "normalize_hp_with_drain",
    # Mapset
    "check_bg_offset_consistency",
    "check_kiai_consistency",
    # Registry and runner
    "REGISTRY",
    "CheckFailure",
    "CheckRun",
    "get_check",
    "run_all",
    "run_beatmap_checks",
    "run_mapset_checks",
]
