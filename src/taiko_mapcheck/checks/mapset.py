"""Mapset checks: consistency of kiai and background offsets across difficulties."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from taiko_mapcheck.checks.base import Issue, Severity, format_time, issue_for
from taiko_mapcheck.config import DEFAULT_CONFIG, CheckConfig
from taiko_mapcheck.data.beatmap import BeatmapSet
from taiko_mapcheck.engine.timing import find_kiai_toggles

logger = logging.getLogger(__name__)


def _members(versions: list[str]) -> str:
    return ", ".join(versions)


def check_kiai_consistency(
    beatmap_set: BeatmapSet,
    config: CheckConfig = DEFAULT_CONFIG,
) -> Iterator[Issue]:
    """Group difficulties by their kiai toggle offsets; more than one group is Minor.

    One issue per group, arguments ``(members, toggles)``.
    """
    groups: dict[tuple[float, ...], list[str]] = {}
    for beatmap in beatmap_set.beatmaps:
        offsets = tuple(t.offset for t in find_kiai_toggles(beatmap.timing_points))
        groups.setdefault(offsets, []).append(beatmap.version)

    if len(groups) < 2:
        return
    logger.debug("Kiai differs across %d groups of difficulties", len(groups))
    for offsets, versions in groups.items():
        toggles = ", ".join(format_time(t) for t in offsets) or "no kiai"
        yield issue_for("kiai_consistency", Severity.MINOR, _members(versions), toggles)


def check_bg_offset_consistency(
    beatmap_set: BeatmapSet,
    config: CheckConfig = DEFAULT_CONFIG,
) -> Iterator[Issue]:
    """Flag a background file used with different offsets across difficulties.

    One issue per offset group, arguments ``(path, offset, members)``.
    """
    by_path: dict[str, dict[tuple[float, float], list[str]]] = {}
    for beatmap in beatmap_set.beatmaps:
        for background in beatmap.backgrounds:
            offsets = by_path.setdefault(background.path, {})
            offsets.setdefault(background.offset, []).append(beatmap.version)

    for path, offsets in by_path.items():
        if len(offsets) < 2:
            continue
        for (x, y), versions in offsets.items():
            yield issue_for(
                "bg_offset_consistency",
                Severity.MINOR,
                path,
                f"({x:g}, {y:g})",
                _members(versions),
            )
