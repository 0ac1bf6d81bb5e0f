"""Timing model: tempo normalisation and barline offsets.

Thresholds in the ranking criteria are written in beats, but a "beat" at
90 BPM and one at 180 BPM are the same musical density. Tempos are
therefore folded into a canonical band before any beat-based threshold
is converted to milliseconds.

Barlines are implicit: each uninherited point places one every
``ms_per_beat * meter`` ms from its offset until the next uninherited
point (which places one at its own offset unless it omits it).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

import numpy as np

from taiko_mapcheck.config import TimingConfig
from taiko_mapcheck.data.beatmap import TimingPoint

logger = logging.getLogger(__name__)


class InvalidTimingPointError(ValueError):
    """An uninherited timing point whose tempo or meter cannot place barlines."""

    def __init__(self, point: TimingPoint, reason: str) -> None:
        super().__init__(f"Invalid timing point at {point.offset:g}ms: {reason}")
        self.point = point


def validate_timing_point(point: TimingPoint) -> None:
    """Fail fast on tempo data that would make modulo or division undefined."""
    if not math.isfinite(point.ms_per_beat) or point.ms_per_beat <= 0:
        raise InvalidTimingPointError(point, f"ms_per_beat must be positive, got {point.ms_per_beat}")
    if point.meter <= 0:
        raise InvalidTimingPointError(point, f"meter must be positive, got {point.meter}")


def normalize_ms_per_beat(ms_per_beat: float, config: TimingConfig | None = None) -> float:
    """Fold a beat length into the canonical BPM band.

    Doubles slow-looking values and halves fast-looking ones until the
    tempo lies below ``max_bpm`` and above ``min_bpm``, then divides by
    1.5 when the tempo is at or below ``triplet_bpm`` so 3/4-related
    tempos are not conflated with 4/4 ones. Idempotent.
    """
    config = config or TimingConfig()
    if not math.isfinite(ms_per_beat) or ms_per_beat <= 0:
        raise ValueError(f"ms_per_beat must be positive, got {ms_per_beat}")

    fastest = 60000 / config.max_bpm
    slowest = 60000 / config.min_bpm
    triplet = 60000 / config.triplet_bpm

    result = ms_per_beat
    while result <= fastest:
        result *= 2
    while result >= slowest:
        result /= 2
    while result >= triplet:
        result /= 1.5
    return result


def bar_gap(point: TimingPoint) -> float:
    """Distance between implicit barlines of an uninherited point."""
    validate_timing_point(point)
    return point.ms_per_beat * point.meter


def take_lower_abs(first: float, second: float) -> float:
    """The argument closer to zero; ties go to ``second``."""
    return first if abs(first) < abs(second) else second


def find_kiai_toggles(points: Sequence[TimingPoint]) -> list[TimingPoint]:
    """Timing points where kiai switches on or off.

    Concurrent points are collapsed first, the last one at an offset
    deciding the state from there on.
    """
    collapsed: list[TimingPoint] = []
    for point in points:
        if collapsed and collapsed[-1].offset == point.offset:
            collapsed[-1] = point
        else:
            collapsed.append(point)

    toggles: list[TimingPoint] = []
    previous: TimingPoint | None = None
    for point in collapsed:
        if (previous is None and point.kiai) or (previous is not None and previous.kiai != point.kiai):
            toggles.append(point)
        previous = point
    return toggles


def find_sv_changes(points: Sequence[TimingPoint]) -> list[TimingPoint]:
    """Timing points where the effective slider velocity changes."""
    changes: list[TimingPoint] = []
    current_sv = 1.0
    for point in points:
        sv = point.slider_velocity
        if not math.isclose(sv, current_sv):
            changes.append(point)
        current_sv = sv
    return changes


class TimingModel:
    """Barline and tempo queries over one beatmap's timing points.

    Only uninherited points take part. A query before the first one is
    answered by the first one; concurrent uninherited points resolve to
    the last of them.
    """

    def __init__(self, points: Sequence[TimingPoint], config: TimingConfig | None = None) -> None:
        self.config = config or TimingConfig()
        self.points = [p for p in points if p.uninherited]
        self._offsets = np.array([p.offset for p in self.points], dtype=np.float64)

    def __bool__(self) -> bool:
        return bool(self.points)

    def point_at(self, time: float) -> TimingPoint | None:
        """The uninherited point governing ``time``."""
        if not self.points:
            return None
        index = int(np.searchsorted(self._offsets, time, side="right")) - 1
        return self.points[max(index, 0)]

    def _governing(self, time: float) -> TimingPoint:
        point = self.point_at(time)
        if point is None:
            raise LookupError("Beatmap has no uninherited timing points")
        return point

    def normalized_ms_per_beat(self, time: float) -> float:
        """Folded beat length at ``time``."""
        point = self._governing(time)
        validate_timing_point(point)
        return normalize_ms_per_beat(point.ms_per_beat, self.config)

    def offset_from_prev_barline_ms(self, time: float) -> float:
        """Milliseconds since the last implicit barline, in ``[0, bar_gap)``."""
        point = self._governing(time)
        gap = bar_gap(point)
        # Python's % already yields the non-negative remainder
        return (time - point.offset) % gap

    def offset_from_next_barline_ms(self, time: float) -> float:
        """Signed distance to the next barline, usually ``<= 0``.

        A new uninherited point between ``time`` and the naive next
        barline moves that barline onto its own offset, so the point
        governing the naive barline instant is consulted as well.
        """
        point = self._governing(time)
        gap = bar_gap(point)
        implicit = (time - point.offset) % gap - gap
        next_point = self._governing(time - implicit)
        redline = time - next_point.offset
        return take_lower_abs(implicit, redline)

    def offset_from_nearest_barline_ms(self, time: float) -> float:
        """Signed offset of least magnitude to a barline."""
        return take_lower_abs(
            self.offset_from_prev_barline_ms(time),
            self.offset_from_next_barline_ms(time),
        )
