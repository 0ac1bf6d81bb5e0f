"""Neighbour lookups over a time-ordered hit object sequence.

Every lookup returns None instead of raising when it runs off either end
of the sequence; callers substitute their own sentinel for a missing
neighbour.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from taiko_mapcheck.data.beatmap import HitObject, HitSound

T = TypeVar("T")

ObjectPredicate = Callable[[HitObject], bool]


def safe_get(seq: Sequence[T], index: int) -> T | None:
    """``seq[index]``, or None when the index is outside the sequence.

    Negative indices count as outside; they never wrap around.
    """
    if 0 <= index < len(seq):
        return seq[index]
    return None


def is_circle(obj: HitObject) -> bool:
    return obj.is_circle


def is_don(obj: HitObject) -> bool:
    """A circle without whistle or clap."""
    return obj.is_circle and not obj.has_hit_sound(HitSound.WHISTLE | HitSound.CLAP)


def is_kat(obj: HitObject) -> bool:
    return obj.is_circle and not is_don(obj)


def is_finisher(obj: HitObject) -> bool:
    return obj.is_circle and obj.has_hit_sound(HitSound.FINISH)


def gap(earlier: HitObject, later: HitObject) -> float:
    """Free time between two objects, measured from the earlier one's tail."""
    return later.time - earlier.end


# ---------------------------------------------------------------------------
# Neighbour scans
# ---------------------------------------------------------------------------


def next_index(
    objects: Sequence[HitObject],
    index: int,
    predicate: ObjectPredicate | None = None,
    skip_concurrent: bool = False,
) -> int | None:
    """Index of the nearest later object matching ``predicate``.

    Args:
        objects: Time-ordered hit objects.
        index: Anchor position.
        predicate: Filter on candidates; None accepts any object.
        skip_concurrent: Also skip objects sharing the anchor's start time.

    Returns:
        The matching index, or None when nothing follows.
    """
    anchor = objects[index].time
    for i in range(index + 1, len(objects)):
        candidate = objects[i]
        if skip_concurrent and candidate.time == anchor:
            continue
        if predicate is None or predicate(candidate):
            return i
    return None


def prev_index(
    objects: Sequence[HitObject],
    index: int,
    predicate: ObjectPredicate | None = None,
    skip_concurrent: bool = False,
) -> int | None:
    """Index of the nearest earlier object matching ``predicate``."""
    anchor = objects[index].time
    for i in range(index - 1, -1, -1):
        candidate = objects[i]
        if skip_concurrent and candidate.time == anchor:
            continue
        if predicate is None or predicate(candidate):
            return i
    return None


def next_of_kind(
    objects: Sequence[HitObject],
    index: int,
    predicate: ObjectPredicate | None = None,
    skip_concurrent: bool = False,
) -> HitObject | None:
    found = next_index(objects, index, predicate, skip_concurrent)
    return None if found is None else objects[found]


def prev_of_kind(
    objects: Sequence[HitObject],
    index: int,
    predicate: ObjectPredicate | None = None,
    skip_concurrent: bool = False,
) -> HitObject | None:
    found = prev_index(objects, index, predicate, skip_concurrent)
    return None if found is None else objects[found]


def is_mono(objects: Sequence[HitObject], index: int) -> bool | None:
    """Whether the object keeps the colour of the object before it.

    Returns None when there is no previous object, which is distinct from
    a colour change (False).
    """
    previous = safe_get(objects, index - 1)
    if previous is None:
        return None
    return is_don(previous) == is_don(objects[index])
