"""Run registered checks over beatmaps and collect their issues.

A check that trips over invalid input (any ``ValueError``, such as an
``InvalidTimingPointError``) is logged and recorded as a failure; the
remaining checks still run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from taiko_mapcheck.checks.base import CheckInfo, Issue, Scope, Severity
from taiko_mapcheck.checks.registry import REGISTRY, get_check
from taiko_mapcheck.config import DEFAULT_CONFIG, CheckConfig
from taiko_mapcheck.data.beatmap import Beatmap, BeatmapSet, Difficulty

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CheckFailure:
    """A check that raised instead of reporting."""

    check: str
    beatmap: str | None
    error: str


@dataclass(slots=True)
class CheckRun:
    """Issues and failures from one or more checks."""

    issues: list[Issue] = field(default_factory=list)
    failures: list[CheckFailure] = field(default_factory=list)

    def extend(self, other: CheckRun) -> None:
        self.issues.extend(other.issues)
        self.failures.extend(other.failures)

    def sort(self) -> None:
        # stable, so issues at the same time keep check order
        self.issues.sort(key=Issue.sort_key)

    @property
    def worst(self) -> Severity | None:
        return max((i.severity for i in self.issues), default=None)

    @property
    def has_problems(self) -> bool:
        return self.worst is Severity.PROBLEM

    def count(self, severity: Severity) -> int:
        return sum(1 for i in self.issues if i.severity is severity)


def _resolve(checks: Iterable[str | CheckInfo] | None, scope: Scope) -> list[CheckInfo]:
    selected = REGISTRY if checks is None else [
        get_check(c) if isinstance(c, str) else c for c in checks
    ]
    return [info for info in selected if info.scope is scope]


def _collect(
    run: CheckRun,
    info: CheckInfo,
    beatmap_name: str | None,
    produce: Callable[[], Iterator[Issue]],
) -> None:
    try:
        issues = list(produce())
    except ValueError as exception:
        logger.warning("Check %s failed on %r: %s", info.name, beatmap_name, exception)
        run.failures.append(CheckFailure(info.name, beatmap_name, str(exception)))
        return
    logger.debug("%s on %r: %d issues", info.name, beatmap_name, len(issues))
    run.issues.extend(issues)


def run_beatmap_checks(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    checks: Iterable[str | CheckInfo] | None = None,
    difficulties: Iterable[Difficulty] | None = None,
) -> CheckRun:
    """Run beatmap-scope checks on one beatmap.

    Args:
        beatmap: Beatmap to check.
        config: Check configuration.
        checks: Names or entries to run; defaults to the whole registry.
            Mapset-scope entries are ignored.
        difficulties: Tiers to evaluate at; see ``select_difficulties``.

    Returns:
        CheckRun with issues in time order.
    """
    tiers = tuple(difficulties) if difficulties is not None else None
    run = CheckRun()
    for info in _resolve(checks, Scope.BEATMAP):
        _collect(run, info, beatmap.version, lambda: info.run(beatmap, config, tiers))
    run.sort()
    return run


def run_mapset_checks(
    beatmap_set: BeatmapSet,
    config: CheckConfig = DEFAULT_CONFIG,
    checks: Iterable[str | CheckInfo] | None = None,
) -> CheckRun:
    """Run mapset-scope checks once over a whole set."""
    run = CheckRun()
    for info in _resolve(checks, Scope.MAPSET):
        _collect(run, info, None, lambda: info.run(beatmap_set, config))
    run.sort()
    return run


def run_all(beatmap_set: BeatmapSet, config: CheckConfig = DEFAULT_CONFIG) -> CheckRun:
    """Every beatmap check on every difficulty, then every mapset check once."""
    run = CheckRun()
    for beatmap in beatmap_set.beatmaps:
        run.extend(run_beatmap_checks(beatmap, config))
    run.extend(run_mapset_checks(beatmap_set, config))
    run.sort()
    logger.info(
        "%d issues from %d checks over %d difficulties (%d failed)",
        len(run.issues), len(REGISTRY), len(beatmap_set.beatmaps), len(run.failures),
    )
    return run
