"""Pattern roles of circles.

A pattern is a run of circles snapped tighter than what surrounds it. A
circle's role follows from its two neighbours alone: whichever side has
the smaller gap is the side its pattern continues on. Neighbours sharing
the circle's start time are skipped, and a neighbour that is not a
circle (drumroll, denden) breaks the pattern.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from taiko_mapcheck.data.beatmap import HitObject
from taiko_mapcheck.engine.sequence import gap, next_of_kind, prev_of_kind


def _neighbours(
    objects: Sequence[HitObject], index: int
) -> tuple[HitObject | None, HitObject | None]:
    previous = prev_of_kind(objects, index, skip_concurrent=True)
    following = next_of_kind(objects, index, skip_concurrent=True)
    if previous is not None and not previous.is_circle:
        previous = None
    if following is not None and not following.is_circle:
        following = None
    return previous, following


def is_at_beginning_of_pattern(objects: Sequence[HitObject], index: int) -> bool:
    """True without a circle just before, or when the gap after is strictly tighter."""
    previous, following = _neighbours(objects, index)
    if previous is None:
        return True
    if following is None:
        return False
    current = objects[index]
    return gap(current, following) < gap(previous, current)


def is_at_end_of_pattern(objects: Sequence[HitObject], index: int) -> bool:
    """True without a circle just after, or when the gap before is strictly tighter."""
    previous, following = _neighbours(objects, index)
    if following is None:
        return True
    if previous is None:
        return False
    current = objects[index]
    return gap(previous, current) < gap(current, following)


def is_in_middle_of_pattern(objects: Sequence[HitObject], index: int) -> bool:
    return not is_at_beginning_of_pattern(objects, index) and not is_at_end_of_pattern(
        objects, index
    )


def is_not_in_pattern(objects: Sequence[HitObject], index: int) -> bool:
    """An isolated circle: both the beginning and the end of its pattern."""
    return is_at_beginning_of_pattern(objects, index) and is_at_end_of_pattern(objects, index)


def pattern_spacing_ms(objects: Sequence[HitObject], index: int) -> float:
    """The gap that defines the snap of the pattern this circle is in.

    0 for an isolated circle, the gap ahead for the first circle, the gap
    behind for the last one, and the tighter of the two in between.
    """
    current = objects[index]
    previous, following = _neighbours(objects, index)
    before = gap(previous, current) if previous is not None else current.time
    after = gap(current, following) if following is not None else math.inf

    beginning = is_at_beginning_of_pattern(objects, index)
    end = is_at_end_of_pattern(objects, index)
    if beginning and end:
        return 0.0
    if beginning:
        return after
    if end:
        return before
    return min(before, after)
