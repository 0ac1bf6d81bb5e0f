"""Timing checks: barlines, kiai toggles, SV placement, first and last note.

These apply to every tier alike, so their issues carry all tiers and
the ``difficulties`` argument is accepted only for a uniform signature.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator

from taiko_mapcheck.checks.base import Issue, Severity, Timestamp, issue_for, timing_model
from taiko_mapcheck.config import DEFAULT_CONFIG, CheckConfig
from taiko_mapcheck.data.beatmap import Beatmap, Difficulty
from taiko_mapcheck.engine.timing import bar_gap, find_kiai_toggles, find_sv_changes

logger = logging.getLogger(__name__)


def format_ms(value: float) -> str:
    """Up to two decimals, trailing zeros dropped ("0.5", "1")."""
    return f"{value:.2f}".rstrip("0").rstrip(".")


# ---------------------------------------------------------------------------
# Barlines
# ---------------------------------------------------------------------------


def check_double_barlines(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag uninherited points placed just after an implicit barline.

    The renderer then draws two barlines a few ms apart. A remainder
    within ``rounding_error_margin`` below a whole bar is reported as a
    rounding error instead. Issue arguments: ``(Timestamp(next point),)``.
    """
    settings = config.double_barline
    margin = config.timing.rounding_error_margin
    red_lines = [p for p in beatmap.timing_points if p.uninherited]

    for current, following in zip(red_lines, red_lines[1:]):
        bar = bar_gap(current)
        distance = following.offset - current.offset
        if following.omits_barline or (current.omits_barline and distance <= bar):
            continue

        rest = distance % bar
        if rest - bar > -margin:
            severity, variant = Severity.WARNING, "rounding_error"
        elif 0 < rest <= settings.threshold_ms:
            if rest >= settings.exact_floor_ms:
                severity, variant = Severity.PROBLEM, "problem"
            else:
                severity, variant = Severity.WARNING, "warning"
        else:
            continue
        yield issue_for(
            "double_barlines",
            severity,
            Timestamp.of(following.offset),
            variant=variant,
            beatmap=beatmap,
        )


def check_barline_unaffected_by_sv(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag SV changes placed a hair after a barline, which leaves the barline at the old SV.

    Issue arguments: ``(Timestamp(barline), unsnap_ms)``.
    """
    timing = timing_model(beatmap, config, "barline_unaffected_by_sv")
    if not timing:
        return

    for change in find_sv_changes(beatmap.timing_points):
        unsnap = timing.offset_from_nearest_barline_ms(change.offset)
        if 0 < unsnap <= config.sv_unsnap_ms:
            yield issue_for(
                "barline_unaffected_by_sv",
                Severity.WARNING,
                Timestamp.of(change.offset - unsnap),
                format_ms(unsnap),
                beatmap=beatmap,
            )


def check_last_note_barline(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag a last object ending 1-2ms before a barline; clients skip drawing that barline.

    Issue arguments: ``(Timestamp(last object's end),)``.
    """
    timing = timing_model(beatmap, config, "last_note_barline")
    if not beatmap.hit_objects or not timing:
        return

    last = beatmap.hit_objects[-1]
    window = config.last_note
    unsnap = timing.offset_from_next_barline_ms(last.end)
    if window.lower_ms < unsnap <= window.upper_ms:
        yield issue_for(
            "last_note_barline",
            Severity.PROBLEM if last.is_circle else Severity.MINOR,
            Timestamp.of(last.end),
            beatmap=beatmap,
        )


# ---------------------------------------------------------------------------
# Kiai
# ---------------------------------------------------------------------------


def check_conflicting_kiais(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag concurrent timing points that disagree on kiai, once per offset.

    Issue arguments: ``(Timestamp(offset),)``.
    """
    points = beatmap.timing_points
    conflicts = {
        current.offset
        for current, following in zip(points, points[1:])
        if current.offset == following.offset and current.kiai != following.kiai
    }
    for offset in sorted(conflicts):
        yield issue_for(
            "conflicting_kiais",
            Severity.WARNING,
            Timestamp.of(offset),
            beatmap=beatmap,
        )


def check_kiai_flash(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag kiai toggled on and off fast enough to flash.

    Issue arguments: ``(Timestamp(toggle),)``.
    """
    timing = timing_model(beatmap, config, "kiai_flash")
    if not timing:
        return

    divisors = config.kiai_flash
    toggles = find_kiai_toggles(beatmap.timing_points)
    for toggle, following in zip(toggles, toggles[1:]):
        beat = timing.normalized_ms_per_beat(toggle.offset)
        distance = following.offset - toggle.offset
        if distance <= math.ceil(beat / divisors.warning_divisor):
            severity = Severity.WARNING
        elif distance <= math.ceil(beat / divisors.minor_divisor):
            severity = Severity.MINOR
        else:
            continue
        yield issue_for("kiai_flash", severity, Timestamp.of(toggle.offset), beatmap=beatmap)


# ---------------------------------------------------------------------------
# First note
# ---------------------------------------------------------------------------


def check_first_note(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag a first object so early that playback can stutter over it.

    Issue arguments: ``(Timestamp(first), limit_ms, recommended_ms)``.
    """
    if not beatmap.hit_objects:
        return

    first = beatmap.hit_objects[0]
    limits = config.first_note
    if first.time < limits.limit_ms:
        severity = Severity.WARNING
    elif first.time < limits.recommended_ms:
        severity = Severity.MINOR
    else:
        return
    yield issue_for(
        "first_note",
        severity,
        Timestamp.of(first.time),
        limits.limit_ms,
        limits.recommended_ms,
        beatmap=beatmap,
    )
