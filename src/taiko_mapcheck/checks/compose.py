"""Compose checks: rest moments, pattern lengths, snapping, spinners, finishers.

Each check is a generator over one beatmap. Tier tables come from the
config; a check only evaluates tiers its table has an entry for.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator

from taiko_mapcheck.checks.base import (
    Issue,
    Severity,
    Timestamp,
    covered_tiers,
    in_time_order,
    issue_for,
    select_difficulties,
    timing_model,
)
from taiko_mapcheck.config import DEFAULT_CONFIG, CheckConfig, FinisherTier, snap_fraction
from taiko_mapcheck.data.beatmap import Beatmap, BeatmapSet, Difficulty, HitObject
from taiko_mapcheck.engine.patterns import is_at_end_of_pattern
from taiko_mapcheck.engine.sections import (
    beat_lengths,
    continuous_sections,
    snap_clusters,
    violating_runs,
)
from taiko_mapcheck.engine.sequence import (
    gap,
    is_circle,
    is_don,
    is_finisher,
    is_mono,
    next_of_kind,
    prev_of_kind,
    safe_get,
)

logger = logging.getLogger(__name__)


def _circles(beatmap: Beatmap) -> list[HitObject]:
    return [o for o in beatmap.hit_objects if o.is_circle]


# ---------------------------------------------------------------------------
# Rest moments
# ---------------------------------------------------------------------------


def check_rest_moments(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag stretches mapped too long without a rest.

    Issue arguments: ``(start, end, break_label, beats)``.
    """
    table = config.rest_moments
    tiers = select_difficulties(covered_tiers(table), beatmap, difficulties)
    timing = timing_model(beatmap, config, "rest_moments")
    if not tiers or not beatmap.hit_objects or not timing:
        return

    sections = continuous_sections(
        beatmap.hit_objects,
        timing,
        {diff: table[diff.value].rules for diff in tiers},
        config.timing.ms_epsilon,
    )

    issues = []
    for diff, found in sections.items():
        tier = table[diff.value]
        for section in found:
            if section.beats >= tier.warning_beats:
                severity = Severity.WARNING
            elif section.beats >= tier.minor_beats:
                severity = Severity.MINOR
            else:
                continue
            issues.append(
                issue_for(
                    "rest_moments",
                    severity,
                    Timestamp.of(section.start),
                    Timestamp.of(section.end),
                    tier.label,
                    section.beats,
                    difficulties=(diff,),
                    beatmap=beatmap,
                )
            )
    yield from in_time_order(issues)


# ---------------------------------------------------------------------------
# Pattern lengths
# ---------------------------------------------------------------------------


def check_pattern_lengths(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
    bottom_diff_kantan: bool | None = None,
) -> Iterator[Issue]:
    """Flag runs of circles that stay on one snap for too long.

    A run as long as the tier's limit for that snap is Minor, a longer
    one is Warning. Issue arguments: ``(start, end, snap_label, number)``.

    Args:
        beatmap: Beatmap to check.
        config: Check configuration.
        difficulties: Explicit tiers, see ``select_difficulties``.
        bottom_diff_kantan: Whether the set's easiest difficulty is a
            kantan; decides futsuu's 1/2 limit. Defaults to judging the
            beatmap on its own.
    """
    table = config.pattern_lengths
    tiers = select_difficulties(covered_tiers(table), beatmap, difficulties)
    timing = timing_model(beatmap, config, "pattern_lengths")
    circles = _circles(beatmap)
    if not tiers or len(circles) < 2 or not timing:
        return
    if bottom_diff_kantan is None:
        bottom_diff_kantan = BeatmapSet([beatmap]).is_bottom_diff_kantan()

    beats = beat_lengths(circles, timing)
    epsilon = config.timing.ms_epsilon

    issues = []
    for diff in tiers:
        tier = table[diff.value]
        limits = dict(tier.limits)
        if not bottom_diff_kantan:
            limits.update(tier.limits_without_kantan)

        for label, limit in limits.items():
            for first, last in snap_clusters(circles, beats * snap_fraction(label), epsilon):
                number = last - first + 1
                if number > limit:
                    severity = Severity.WARNING
                elif number == limit:
                    severity = Severity.MINOR
                else:
                    continue
                issues.append(
                    issue_for(
                        "pattern_lengths",
                        severity,
                        Timestamp.of(circles[first].time),
                        Timestamp.of(circles[last].time),
                        label,
                        number,
                        difficulties=(diff,),
                        beatmap=beatmap,
                    )
                )
    yield from in_time_order(issues)


def check_mapset_pattern_lengths(
    beatmap_set: BeatmapSet,
    config: CheckConfig = DEFAULT_CONFIG,
) -> Iterator[Issue]:
    """Pattern lengths for every difficulty, aware of whether the set has a kantan."""
    bottom_diff_kantan = beatmap_set.is_bottom_diff_kantan()
    for beatmap in beatmap_set.beatmaps:
        yield from check_pattern_lengths(beatmap, config, None, bottom_diff_kantan)


# ---------------------------------------------------------------------------
# Smallest snap
# ---------------------------------------------------------------------------


def check_smallest_snap(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag circles snapped tighter than the tier allows, one Problem per run.

    Issue arguments: ``(Timestamp(every circle in the run),)``.
    """
    divisors = config.smallest_snap_divisors
    tiers = select_difficulties(covered_tiers(divisors), beatmap, difficulties)
    timing = timing_model(beatmap, config, "smallest_snap")
    circles = _circles(beatmap)
    if not tiers or len(circles) < 2 or not timing:
        return

    beats = beat_lengths(circles, timing)
    runs = violating_runs(
        circles,
        {diff: beats / divisors[diff.value] for diff in tiers},
        config.timing.ms_epsilon,
    )

    issues = [
        issue_for(
            "smallest_snap",
            Severity.PROBLEM,
            Timestamp.of(*(circles[i].time for i in run)),
            difficulties=(diff,),
            beatmap=beatmap,
        )
        for diff, found in runs.items()
        for run in found
    ]
    yield from in_time_order(issues)


# ---------------------------------------------------------------------------
# Spinner readability
# ---------------------------------------------------------------------------


def check_spinner_readability(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag spinners that start too soon after the preceding object ends.

    Issue arguments: ``(Timestamp(object, spinner),)``.
    """
    divisors = config.spinner_gap_divisors
    tiers = select_difficulties(covered_tiers(divisors), beatmap, difficulties)
    timing = timing_model(beatmap, config, "spinner_readability")
    objects = beatmap.hit_objects
    if not tiers or not timing:
        return

    epsilon = config.timing.ms_epsilon
    for i, current in enumerate(objects):
        spinner = safe_get(objects, i + 1)
        if spinner is None or not spinner.is_spinner:
            continue
        beat = timing.normalized_ms_per_beat(current.time)
        free = gap(current, spinner)
        for diff in tiers:
            if free + epsilon < beat / divisors[diff.value]:
                yield issue_for(
                    "spinner_readability",
                    Severity.MINOR,
                    Timestamp.of(current.time, spinner.time),
                    difficulties=(diff,),
                    beatmap=beatmap,
                )


# ---------------------------------------------------------------------------
# Unrankable finishers
# ---------------------------------------------------------------------------


def _finisher_severity(
    objects: list[HitObject],
    index: int,
    tier_config: FinisherTier,
    beat: float,
    epsilon: float,
) -> Severity | None:
    current = objects[index]
    following = next_of_kind(objects, index, is_circle)
    previous = prev_of_kind(objects, index, is_circle)
    next_gap = gap(current, following) if following is not None else math.inf
    previous_gap = gap(previous, current) if previous is not None else math.inf
    min_gap = beat / tier_config.gap_divisor

    levels: list[str] = []
    if tier_config.next_gap and next_gap + epsilon < min_gap:
        levels.append(tier_config.next_gap)
    if tier_config.previous_gap and previous_gap + epsilon < min_gap:
        levels.append(tier_config.previous_gap)

    if tier_config.mid_pattern or tier_config.same_color:
        at_end = is_at_end_of_pattern(objects, index)
        if tier_config.mid_pattern and not at_end:
            levels.append(tier_config.mid_pattern)
        if tier_config.same_color and not at_end:
            neighbour = next_of_kind(objects, index, skip_concurrent=True)
            # no predecessor counts as a colour change
            if (
                neighbour is not None
                and is_don(neighbour) == is_don(current)
                and is_mono(objects, index) is True
            ):
                levels.append(tier_config.same_color)

    if not levels:
        return None
    return max(Severity.parse(level) for level in levels)


def check_unrankable_finishers(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Flag finishers too close to a neighbour, mid-pattern, or inside mono colour runs.

    The most severe condition met decides the level. Issue arguments:
    ``(Timestamp(finisher),)``.
    """
    table = config.finishers
    tiers = select_difficulties(covered_tiers(table), beatmap, difficulties)
    timing = timing_model(beatmap, config, "unrankable_finishers")
    objects = beatmap.hit_objects
    if not tiers or not timing:
        return

    epsilon = config.timing.ms_epsilon
    for index, current in enumerate(objects):
        if not is_finisher(current):
            continue
        beat = timing.normalized_ms_per_beat(current.time)
        for diff in tiers:
            severity = _finisher_severity(objects, index, table[diff.value], beat, epsilon)
            if severity is None:
                continue
            yield issue_for(
                "unrankable_finishers",
                severity,
                Timestamp.of(current.time),
                difficulties=(diff,),
                beatmap=beatmap,
            )
