"""Timing model, neighbour lookups and gap segmentation shared by all checks."""

from taiko_mapcheck.engine.patterns import (
    is_at_beginning_of_pattern,
    is_at_end_of_pattern,
    is_in_middle_of_pattern,
    is_not_in_pattern,
    pattern_spacing_ms,
)
from taiko_mapcheck.engine.sections import (
    Section,
    continuous_sections,
    object_gaps,
    snap_clusters,
    violating_runs,
)
from taiko_mapcheck.engine.sequence import (
    gap,
    is_don,
    is_finisher,
    is_kat,
    is_mono,
    next_of_kind,
    prev_of_kind,
    safe_get,
)
from taiko_mapcheck.engine.timing import (
    InvalidTimingPointError,
    TimingModel,
    find_kiai_toggles,
    find_sv_changes,
    normalize_ms_per_beat,
    take_lower_abs,
)

__all__ = [
    "InvalidTimingPointError",
    "Section",
    "TimingModel",
    "continuous_sections",
    "find_kiai_toggles",
    "find_sv_changes",
    "gap",
    "is_at_beginning_of_pattern",
    "is_at_end_of_pattern",
    "is_don",
    "is_finisher",
    "is_in_middle_of_pattern",
    "is_kat",
    "is_mono",
    "is_not_in_pattern",
    "next_of_kind",
    "normalize_ms_per_beat",
    "object_gaps",
    "pattern_spacing_ms",
    "prev_of_kind",
    "safe_get",
    "snap_clusters",
    "take_lower_abs",
    "violating_runs",
]
