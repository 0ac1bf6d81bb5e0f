"""osu!taiko beatmap data model and JSON loaders.

The model mirrors what a .osu parser hands over: uninherited (red) and
inherited (green) timing points, hit objects with their hit sounds, the
difficulty settings and background references. Loading the .osu format
itself is left to that parser; here we only read its JSON dump.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)


class BeatmapFormatError(ValueError):
    """Raised when a beatmap JSON document cannot be mapped onto the model."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Difficulty(enum.Enum):
    """Difficulty tiers, easiest to hardest."""

    KANTAN = "kantan"
    FUTSUU = "futsuu"
    MUZUKASHII = "muzukashii"
    ONI = "oni"
    INNER_ONI = "inner_oni"
    URA = "ura"

    @property
    def rank(self) -> int:
        return _DIFFICULTY_ORDER.index(self)

    @classmethod
    def parse(cls, name: str) -> Difficulty:
        """Look a tier up by value ("oni") or enum name ("ONI")."""
        key = name.strip().lower().replace(" ", "_").replace("-", "_")
        for diff in cls:
            if diff.value == key:
                return diff
        raise BeatmapFormatError(f"Unknown difficulty tier: {name!r}")


_DIFFICULTY_ORDER = list(Difficulty)

ALL_DIFFICULTIES: tuple[Difficulty, ...] = tuple(Difficulty)


class ObjectKind(enum.Enum):
    CIRCLE = "circle"
    SLIDER = "slider"
    SPINNER = "spinner"


class HitSound(enum.Flag):
    """Hit sound additions; whistle and clap make a circle a kat."""

    NONE = 0
    WHISTLE = enum.auto()
    FINISH = enum.auto()
    CLAP = enum.auto()


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TimingPoint:
    """A timing line. Uninherited points define tempo and meter."""

    offset: float  # ms
    ms_per_beat: float  # negative on inherited points (-100 / sv)
    meter: int = 4
    uninherited: bool = True
    omits_barline: bool = False
    kiai: bool = False

    @property
    def slider_velocity(self) -> float:
        if self.uninherited or self.ms_per_beat >= 0:
            return 1.0
        return -100.0 / self.ms_per_beat


@dataclass(frozen=True, slots=True)
class HitObject:
    """A circle, slider (drumroll) or spinner (denden)."""

    time: float  # ms
    kind: ObjectKind = ObjectKind.CIRCLE
    end_time: float | None = None
    hit_sound: HitSound = HitSound.NONE

    @property
    def end(self) -> float:
        """End time; a circle ends where it starts."""
        return self.time if self.end_time is None else self.end_time

    @property
    def is_circle(self) -> bool:
        return self.kind is ObjectKind.CIRCLE

    @property
    def is_spinner(self) -> bool:
        return self.kind is ObjectKind.SPINNER

    def has_hit_sound(self, sound: HitSound) -> bool:
        return bool(self.hit_sound & sound)


@dataclass(frozen=True, slots=True)
class Background:
    """A background image reference from the events section."""

    path: str
    offset: tuple[float, float] = (0.0, 0.0)


@dataclass
class Beatmap:
    """One difficulty of a mapset."""

    version: str
    timing_points: list[TimingPoint] = field(default_factory=list)
    hit_objects: list[HitObject] = field(default_factory=list)
    difficulty: Difficulty | None = None
    hp: float = 5.0
    od: float = 5.0
    drain_time: float | None = None  # ms
    backgrounds: list[Background] = field(default_factory=list)

    def get_drain_time(self) -> float:
        """Drain time in ms, falling back to the span of the hit objects."""
        if self.drain_time is not None:
            return self.drain_time
        if not self.hit_objects:
            return 0.0
        return max(o.end for o in self.hit_objects) - self.hit_objects[0].time


@dataclass
class BeatmapSet:
    """All difficulties sharing one song folder."""

    beatmaps: list[Beatmap] = field(default_factory=list)

    def has_difficulty(self, difficulty: Difficulty) -> bool:
        return any(b.difficulty is difficulty for b in self.beatmaps)

    def is_bottom_diff_kantan(self) -> bool:
        """Whether the lowest-tier difficulty in the set is a kantan."""
        tiers = [b.difficulty for b in self.beatmaps if b.difficulty is not None]
        if not tiers:
            return False
        return min(tiers, key=lambda d: d.rank) is Difficulty.KANTAN


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------


def parse_beatmap_file(path: Path | str) -> Beatmap:
    """Parse a beatmap JSON dump from disk.

    Args:
        path: Path to the JSON file.

    Returns:
        Beatmap with sorted timing points and hit objects.
    """
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    beatmap = parse_beatmap_json(data)
    if not beatmap.version:
        beatmap.version = path.stem
    return beatmap


def parse_beatmap_json(data: dict[str, Any]) -> Beatmap:
    """Parse a beatmap from an already-loaded JSON dict.

    Args:
        data: Parsed JSON dictionary.

    Returns:
        Beatmap with sorted timing points and hit objects.

    Raises:
        BeatmapFormatError: On unknown object kinds, hit sounds or tiers.
    """
    diff_name = data.get("difficulty")
    drain = data.get("drain_time")

    # sorted() is stable, so concurrent timing points keep their file order
    timing_points = sorted(
        (_parse_timing_point(tp) for tp in data.get("timing_points", [])),
        key=lambda tp: tp.offset,
    )
    hit_objects = sorted(
        (_parse_hit_object(o) for o in data.get("hit_objects", [])),
        key=lambda o: o.time,
    )

    beatmap = Beatmap(
        version=str(data.get("version", "")),
        timing_points=timing_points,
        hit_objects=hit_objects,
        difficulty=Difficulty.parse(diff_name) if diff_name else None,
        hp=float(data.get("hp", 5.0)),
        od=float(data.get("od", 5.0)),
        drain_time=float(drain) if drain is not None else None,
        backgrounds=[_parse_background(bg) for bg in data.get("backgrounds", [])],
    )
    logger.debug(
        "Parsed %r: %d timing points, %d hit objects",
        beatmap.version, len(timing_points), len(hit_objects),
    )
    return beatmap


def parse_mapset_files(paths: Iterable[Path | str]) -> BeatmapSet:
    """Parse several beatmap JSON dumps into one set."""
    return BeatmapSet(beatmaps=[parse_beatmap_file(p) for p in paths])


# ---------------------------------------------------------------------------
# Internal parsers for each object type
# ---------------------------------------------------------------------------


def _parse_timing_point(d: dict[str, Any]) -> TimingPoint:
    ms_per_beat = float(d.get("ms_per_beat", 500.0))
    return TimingPoint(
        offset=float(d.get("offset", 0)),
        ms_per_beat=ms_per_beat,
        meter=int(d.get("meter", 4)),
        uninherited=bool(d.get("uninherited", ms_per_beat > 0)),
        omits_barline=bool(d.get("omits_barline", False)),
        kiai=bool(d.get("kiai", False)),
    )


def _parse_hit_object(d: dict[str, Any]) -> HitObject:
    kind_name = str(d.get("kind", "circle")).lower()
    try:
        kind = ObjectKind(kind_name)
    except ValueError:
        raise BeatmapFormatError(f"Unknown hit object kind: {kind_name!r}") from None

    hit_sound = HitSound.NONE
    for name in d.get("hit_sounds", []):
        try:
            hit_sound |= HitSound[str(name).upper()]
        except KeyError:
            raise BeatmapFormatError(f"Unknown hit sound: {name!r}") from None

    end_time = d.get("end_time")
    return HitObject(
        time=float(d.get("time", 0)),
        kind=kind,
        end_time=float(end_time) if end_time is not None else None,
        hit_sound=hit_sound,
    )


def _parse_background(d: dict[str, Any]) -> Background:
    x, y = d.get("offset", (0, 0))
    return Background(path=str(d.get("path", "")), offset=(float(x), float(y)))
