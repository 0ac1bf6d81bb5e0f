"""Beatmap data model and JSON loaders."""

from taiko_mapcheck.data.beatmap import (
    ALL_DIFFICULTIES,
    Background,
    Beatmap,
    BeatmapFormatError,
    BeatmapSet,
    Difficulty,
    HitObject,
    HitSound,
    ObjectKind,
    TimingPoint,
    parse_beatmap_file,
    parse_beatmap_json,
    parse_mapset_files,
)

__all__ = [
    # Model
    "ALL_DIFFICULTIES",
    "Background",
    "Beatmap",
    "BeatmapSet",
    "Difficulty",
    "HitObject",
    "HitSound",
    "ObjectKind",
    "TimingPoint",
    # Loading
    "BeatmapFormatError",
    "parse_beatmap_file",
    "parse_beatmap_json",
    "parse_mapset_files",
]
