"""Gap-driven segmentation shared by the compose checks.

Three strategies, all working on the gap array of a hit object sequence
(``gaps[j]`` is the free time between object ``j`` and ``j + 1``):

* ``continuous_sections`` finds stretches mapped without a qualifying
  rest and measures them in beats.
* ``violating_runs`` groups consecutive gaps below a threshold into runs.
* ``snap_clusters`` groups consecutive gaps at or under a snap length.

Multi-tier entry points keep one state object per tier so tiers never
share buffers.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from taiko_mapcheck.config import RestRule
from taiko_mapcheck.data.beatmap import Difficulty, HitObject
from taiko_mapcheck.engine.timing import TimingModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Section:
    """A continuously mapped stretch between two rests."""

    start: float
    end: float
    beats: int
    first_index: int
    last_index: int


# ---------------------------------------------------------------------------
# Array helpers
# ---------------------------------------------------------------------------


def object_gaps(objects: Sequence[HitObject]) -> np.ndarray:
    """Gap from each object's tail to the next object's head, length ``n - 1``."""
    if len(objects) < 2:
        return np.empty(0, dtype=np.float64)
    starts = np.array([o.time for o in objects[1:]], dtype=np.float64)
    ends = np.array([o.end for o in objects[:-1]], dtype=np.float64)
    return starts - ends


def beat_lengths(objects: Sequence[HitObject], timing: TimingModel) -> np.ndarray:
    """Normalized beat length governing each object's start time."""
    return np.array(
        [timing.normalized_ms_per_beat(o.time) for o in objects], dtype=np.float64
    )


def window_min(gaps: np.ndarray, first: int, count: int) -> float:
    """Smallest gap in ``gaps[first:first + count]``; missing gaps count as infinite."""
    lo = max(first, 0)
    hi = min(first + count, len(gaps))
    if lo >= hi:
        return math.inf
    return float(gaps[lo:hi].min())


# ---------------------------------------------------------------------------
# Continuous sections
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _SectionState:
    rules: Sequence[RestRule]
    sections: list[Section] = field(default_factory=list)
    start_index: int | None = None

    def close(self, objects: Sequence[HitObject], index: int, beat: float, epsilon: float) -> None:
        if self.start_index is None:
            return
        start = objects[self.start_index].time
        end = objects[index].time
        beats = math.floor((end - start + epsilon) / beat)
        self.sections.append(Section(start, end, beats, self.start_index, index))
        self.start_index = None


def _qualifies(gaps: np.ndarray, first: int, rule: RestRule, beat: float, epsilon: float) -> bool:
    return window_min(gaps, first, rule.gap_count) + epsilon >= rule.min_beats * beat


def continuous_sections(
    objects: Sequence[HitObject],
    timing: TimingModel,
    rules: Mapping[Difficulty, Sequence[RestRule]],
    epsilon: float,
) -> dict[Difficulty, list[Section]]:
    """Split a sequence into continuously mapped sections, per tier.

    An object opens a section when the window of ``gap_count`` gaps
    behind it satisfies one of the tier's rest rules, and closes the open
    section when the window ahead of it does. The last object always
    closes. Section length is counted in whole normalized beats.

    Args:
        objects: Time-ordered hit objects.
        timing: Timing model of the beatmap.
        rules: Rest rules per tier; any one qualifying rule is a rest.
        epsilon: Tolerance added to every gap comparison.

    Returns:
        Sections per tier, in time order.
    """
    states = {diff: _SectionState(rules=tier_rules) for diff, tier_rules in rules.items()}
    if not objects or not timing:
        return {diff: [] for diff in states}

    gaps = object_gaps(objects)
    beats = beat_lengths(objects, timing)
    last = len(objects) - 1

    for i in range(len(objects)):
        beat = float(beats[i])
        for state in states.values():
            if any(_qualifies(gaps, i - r.gap_count, r, beat, epsilon) for r in state.rules):
                if state.start_index is not None and i > 0:
                    state.close(objects, i - 1, float(beats[i - 1]), epsilon)
                state.start_index = i
            ahead = any(_qualifies(gaps, i, r, beat, epsilon) for r in state.rules)
            if ahead or i == last:
                state.close(objects, i, beat, epsilon)

    for diff, state in states.items():
        logger.debug("%s: %d continuous sections", diff.value, len(state.sections))
    return {diff: state.sections for diff, state in states.items()}


# ---------------------------------------------------------------------------
# Violating runs
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _RunState:
    violating: np.ndarray
    buffer: list[int] = field(default_factory=list)
    runs: list[list[int]] = field(default_factory=list)

    def feed(self, i: int) -> None:
        if self.violating[i]:
            if not self.buffer:
                self.buffer.append(i)
            self.buffer.append(i + 1)
        elif self.buffer:
            self.runs.append(self.buffer)
            self.buffer = []


def violating_runs(
    objects: Sequence[HitObject],
    min_gaps: Mapping[Difficulty, np.ndarray],
    epsilon: float,
) -> dict[Difficulty, list[list[int]]]:
    """Group objects joined by too-small gaps into runs, per tier.

    A gap violates when ``gap + epsilon < min_gap`` where ``min_gap`` is
    taken at the earlier object. Each run lists the indices of every
    object it touches, first to last; a run is emitted once the next
    non-violating gap (or the end of the sequence) is reached.

    Args:
        objects: Time-ordered hit objects.
        min_gaps: Per tier, the minimal allowed gap after each object
            (length ``len(objects)``).
        epsilon: Tolerance added to every gap comparison.

    Returns:
        Runs of object indices per tier.
    """
    gaps = object_gaps(objects)
    states: dict[Difficulty, _RunState] = {}
    for diff, thresholds in min_gaps.items():
        violating = gaps + epsilon < np.asarray(thresholds, dtype=np.float64)[: len(gaps)]
        # the missing gap after the last object never violates
        states[diff] = _RunState(violating=np.append(violating, False))

    for i in range(len(objects)):
        for state in states.values():
            state.feed(i)

    return {diff: state.runs for diff, state in states.items()}


# ---------------------------------------------------------------------------
# Snap clusters
# ---------------------------------------------------------------------------


def snap_clusters(
    objects: Sequence[HitObject],
    snap_ms: np.ndarray,
    epsilon: float,
) -> list[tuple[int, int]]:
    """Maximal runs of objects whose gaps are at most one snap apart.

    Args:
        objects: Time-ordered hit objects.
        snap_ms: Snap length in ms at each object (length ``len(objects)``).
        epsilon: Tolerance subtracted from each gap before comparing.

    Returns:
        ``(first_index, last_index)`` pairs of clusters with two or more
        objects.
    """
    gaps = object_gaps(objects)
    tight = gaps - epsilon <= np.asarray(snap_ms, dtype=np.float64)[: len(gaps)]

    clusters: list[tuple[int, int]] = []
    first: int | None = None
    for j, is_tight in enumerate(tight):
        if is_tight and first is None:
            first = j
        elif not is_tight and first is not None:
            clusters.append((first, j))
            first = None
    if first is not None:
        clusters.append((first, len(objects) - 1))
    return clusters
