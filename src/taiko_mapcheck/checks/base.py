"""Issue model and check metadata shared by every check."""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from taiko_mapcheck.config import CheckConfig
from taiko_mapcheck.data.beatmap import ALL_DIFFICULTIES, Beatmap, Difficulty
from taiko_mapcheck.engine.timing import TimingModel

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Severity and timestamps
# ---------------------------------------------------------------------------


class Severity(enum.IntEnum):
    """Issue levels, ordered so ``max()`` picks the most severe."""

    MINOR = 1
    WARNING = 2
    PROBLEM = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, label: str) -> Severity:
        return cls[label.upper()]


def format_time(ms: float) -> str:
    """Editor-style ``mm:ss:mmm`` for a time in milliseconds."""
    sign = "-" if ms < 0 else ""
    total = int(round(abs(ms)))
    minutes, rest = divmod(total, 60_000)
    seconds, millis = divmod(rest, 1000)
    return f"{sign}{minutes:02d}:{seconds:02d}:{millis:03d}"


@dataclass(frozen=True, slots=True)
class Timestamp:
    """One or more instants an issue points at, in ms."""

    times: tuple[float, ...]

    @classmethod
    def of(cls, *times: float) -> Timestamp:
        return cls(tuple(float(t) for t in times))

    @property
    def start(self) -> float:
        return self.times[0]

    @property
    def end(self) -> float:
        return self.times[-1]

    def __str__(self) -> str:
        return ", ".join(format_time(t) for t in self.times)


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Issue:
    """A single violation found by a check.

    Attributes:
        check: Registry name of the check that produced it.
        severity: Minor, Warning or Problem.
        arguments: Values for the message, in check-specific order.
        difficulties: Tiers the issue applies to.
        variant: Which of the check's messages applies ("problem",
            "rounding_error", "hp_warning", ...).
        beatmap: Difficulty name, None for set-wide issues.
    """

    check: str
    severity: Severity
    arguments: tuple[Any, ...] = ()
    difficulties: frozenset[Difficulty] = field(default_factory=lambda: frozenset(ALL_DIFFICULTIES))
    variant: str = ""
    beatmap: str | None = None

    @property
    def time(self) -> float | None:
        """Start of the first timestamp argument, if any."""
        for arg in self.arguments:
            if isinstance(arg, Timestamp):
                return arg.start
        return None

    def sort_key(self) -> float:
        time = self.time
        return -math.inf if time is None else time

    def format(self) -> str:
        tiers = ",".join(d.value for d in sorted(self.difficulties, key=lambda d: d.rank))
        args = " ".join(str(a) for a in self.arguments)
        where = f"[{self.beatmap}] " if self.beatmap else ""
        return f"{self.severity.label:<8} {self.check:<28} {tiers:<40} {where}{args}".rstrip()


def issue_for(
    check: str,
    severity: Severity,
    *arguments: Any,
    difficulties: Iterable[Difficulty] | None = None,
    variant: str = "",
    beatmap: Beatmap | None = None,
) -> Issue:
    """Build an Issue, defaulting to every tier."""
    return Issue(
        check=check,
        severity=severity,
        arguments=tuple(arguments),
        difficulties=frozenset(ALL_DIFFICULTIES if difficulties is None else difficulties),
        variant=variant or severity.label,
        beatmap=beatmap.version if beatmap is not None else None,
    )


# ---------------------------------------------------------------------------
# Check metadata
# ---------------------------------------------------------------------------


class Scope(enum.Enum):
    BEATMAP = "beatmap"
    MAPSET = "mapset"


CheckFunction = Callable[..., Iterator[Issue]]
TierSource = Callable[[CheckConfig], Sequence[Difficulty]]


def all_tiers(config: CheckConfig) -> tuple[Difficulty, ...]:
    return ALL_DIFFICULTIES


@dataclass(frozen=True, slots=True)
class CheckInfo:
    """Registry entry: metadata plus the function that runs the check.

    Beatmap-scope functions are called as ``run(beatmap, config,
    difficulties)``, mapset-scope ones as ``run(beatmap_set, config)``.
    ``tiers`` reads the covered tiers off a config, so overrides that add
    a tier show up in ``difficulties()``.
    """

    name: str
    category: str
    message: str
    scope: Scope
    run: CheckFunction
    tiers: TierSource = all_tiers

    def difficulties(self, config: CheckConfig) -> tuple[Difficulty, ...]:
        """Tiers this check evaluates under ``config``, easiest first."""
        return tuple(self.tiers(config))


def select_difficulties(
    covered: Sequence[Difficulty],
    beatmap: Beatmap,
    difficulties: Iterable[Difficulty] | None = None,
) -> tuple[Difficulty, ...]:
    """Tiers to evaluate a beatmap at.

    An explicit selection wins (restricted to covered tiers). Otherwise a
    beatmap with a declared tier is evaluated at that tier only, or not at
    all when the check does not cover it; an undeclared tier means every
    tier the check covers.
    """
    if difficulties is not None:
        return tuple(d for d in difficulties if d in covered)
    if beatmap.difficulty is not None:
        return (beatmap.difficulty,) if beatmap.difficulty in covered else ()
    return tuple(covered)


def covered_tiers(table: Mapping[str, object]) -> tuple[Difficulty, ...]:
    """Tiers a per-tier config table has entries for, easiest first."""
    return tuple(sorted((Difficulty(key) for key in table), key=lambda d: d.rank))


def in_time_order(issues: Iterable[Issue]) -> Iterator[Issue]:
    yield from sorted(issues, key=Issue.sort_key)


def timing_model(beatmap: Beatmap, config: CheckConfig, check: str) -> TimingModel:
    """Timing model of a beatmap; logs when it has nothing to place barlines with."""
    timing = TimingModel(beatmap.timing_points, config.timing)
    if not timing:
        logger.debug("%r has no uninherited timing points, skipping %s", beatmap.version, check)
    return timing
