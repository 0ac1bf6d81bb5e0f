"""Tests for the check registry and runner."""

from __future__ import annotations

import pytest

from taiko_mapcheck.checks.base import Scope, Severity
from taiko_mapcheck.checks.registry import REGISTRY, get_check
from taiko_mapcheck.checks.runner import (
    CheckFailure,
    CheckRun,
    run_all,
    run_beatmap_checks,
    run_mapset_checks,
)
from taiko_mapcheck.config import DEFAULT_CONFIG, config_from_dict
from taiko_mapcheck.data.beatmap import (
    ALL_DIFFICULTIES,
    Beatmap,
    BeatmapSet,
    Difficulty,
    HitObject,
    TimingPoint,
)


def _beatmap(
    objects: list[HitObject],
    points: list[TimingPoint] | None = None,
    difficulty: Difficulty | None = Difficulty.ONI,
    version: str = "Oni",
    **settings,
) -> Beatmap:
    settings.setdefault("hp", 5.5)
    settings.setdefault("od", 5.5)
    settings.setdefault("drain_time", 120_000)
    return Beatmap(
        version=version,
        timing_points=points if points is not None else [TimingPoint(0, 400, 4)],
        hit_objects=objects,
        difficulty=difficulty,
        **settings,
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_registry_names_unique() -> None:
    names = [info.name for info in REGISTRY]
    assert len(names) == len(set(names))
    assert {info.category for info in REGISTRY} == {"Compose", "Timing", "Settings", "Design"}


def test_registry_scopes() -> None:
    mapset = {info.name for info in REGISTRY if info.scope is Scope.MAPSET}
    assert mapset == {"pattern_lengths", "kiai_consistency", "bg_offset_consistency"}


def test_covered_tiers_follow_config() -> None:
    info = get_check("pattern_lengths")
    assert Difficulty.INNER_ONI not in info.difficulties(DEFAULT_CONFIG)
    config = config_from_dict({"pattern_lengths": {"inner_oni": {"limits": {"1/4": 17}}}})
    assert Difficulty.INNER_ONI in info.difficulties(config)
    assert get_check("first_note").difficulties(config) == ALL_DIFFICULTIES
    assert get_check("hp_od").difficulties(config) == (
        Difficulty.KANTAN,
        Difficulty.FUTSUU,
        Difficulty.MUZUKASHII,
        Difficulty.ONI,
    )


def test_added_tier_is_graded() -> None:
    inner = _beatmap(
        [HitObject(1000 + i * 100.0) for i in range(18)],
        difficulty=Difficulty.INNER_ONI,
        version="Inner Oni",
    )
    beatmap_set = BeatmapSet([inner])
    assert run_mapset_checks(beatmap_set, checks=["pattern_lengths"]).issues == []

    config = config_from_dict({"pattern_lengths": {"inner_oni": {"limits": {"1/4": 17}}}})
    run = run_mapset_checks(beatmap_set, config, checks=["pattern_lengths"])
    assert [(i.severity, i.arguments[3]) for i in run.issues] == [(Severity.WARNING, 18)]
    assert run.issues[0].difficulties == frozenset({Difficulty.INNER_ONI})


def test_get_check() -> None:
    assert get_check("kiai_flash").category == "Timing"
    with pytest.raises(KeyError, match="Unknown check"):
        get_check("kiai_flashes")


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


class TestRunBeatmapChecks:
    def test_failure_is_isolated(self):
        # a zero-length beat cannot place barlines
        beatmap = _beatmap(
            [HitObject(100)],
            points=[TimingPoint(0, 0.0, 4), TimingPoint(2010, 500, 4)],
        )
        run = run_beatmap_checks(beatmap)
        failed = {f.check for f in run.failures}
        assert "double_barlines" in failed
        assert all(f.beatmap == "Oni" for f in run.failures)
        assert "first_note" in {i.check for i in run.issues}

    def test_deterministic(self):
        beatmap = _beatmap([HitObject(100), HitObject(110), HitObject(120)])
        assert run_beatmap_checks(beatmap).issues == run_beatmap_checks(beatmap).issues

    def test_time_order(self):
        beatmap = _beatmap(
            [HitObject(100), HitObject(2400), HitObject(2410)],
            points=[TimingPoint(0, 500, 4), TimingPoint(2010, 500, 4)],
            hp=9.0,
        )
        run = run_beatmap_checks(beatmap)
        keys = [i.sort_key() for i in run.issues]
        assert keys == sorted(keys)
        # issues without a timestamp come first
        assert run.issues[0].check == "hp_od"
        assert run.issues[0].time is None

    def test_zero_objects(self):
        checks = [
            "rest_moments",
            "smallest_snap",
            "spinner_readability",
            "unrankable_finishers",
            "last_note_barline",
            "first_note",
        ]
        run = run_beatmap_checks(_beatmap([]), checks=checks)
        assert run.issues == []
        assert run.failures == []

    def test_explicit_tiers(self):
        beatmap = _beatmap([HitObject(0), HitObject(100), HitObject(200)], difficulty=None)
        run = run_beatmap_checks(beatmap, checks=["smallest_snap"], difficulties=[Difficulty.KANTAN])
        assert [i.difficulties for i in run.issues] == [frozenset({Difficulty.KANTAN})]

    def test_declared_tier_without_tables(self):
        # a dense ura stream would break every easier tier's limits
        ura = _beatmap(
            [HitObject(1000 + i * 100.0) for i in range(17)],
            difficulty=Difficulty.URA,
            version="Ura",
        )
        run = run_all(BeatmapSet([ura]))
        assert run.issues == []
        assert run.failures == []

    def test_mapset_checks_skipped(self):
        beatmap = _beatmap([HitObject(t) for t in range(0, 2000, 100)])
        run = run_beatmap_checks(beatmap, checks=["pattern_lengths", get_check("kiai_consistency")])
        assert run.issues == []

    def test_problems(self):
        beatmap = _beatmap([HitObject(1000)], points=[TimingPoint(0, 500, 4), TimingPoint(2010, 500, 4)])
        run = run_beatmap_checks(beatmap)
        assert run.has_problems
        assert run.worst is Severity.PROBLEM
        assert run.count(Severity.PROBLEM) == 1


class TestRunMapset:
    def test_empty_set(self):
        run = run_all(BeatmapSet([]))
        assert run.issues == []
        assert run.failures == []
        assert run.worst is None
        assert not run.has_problems

    def test_pattern_lengths_see_whole_set(self):
        futsuu = _beatmap([HitObject(i * 200.0) for i in range(6)], difficulty=Difficulty.FUTSUU, version="Futsuu")
        oni = _beatmap([], version="Oni")
        without_kantan = run_mapset_checks(BeatmapSet([futsuu, oni]), checks=["pattern_lengths"])
        assert [i.beatmap for i in without_kantan.issues] == ["Futsuu"]

        kantan = _beatmap([], difficulty=Difficulty.KANTAN, version="Kantan")
        with_kantan = run_mapset_checks(BeatmapSet([kantan, futsuu]), checks=["pattern_lengths"])
        assert with_kantan.issues == []

    def test_run_all_collects_both_scopes(self):
        kantan = _beatmap([HitObject(1000)], difficulty=Difficulty.KANTAN, version="Kantan", hp=8.0, od=3.0)
        oni = _beatmap(
            [HitObject(1000)],
            points=[TimingPoint(0, 400, 4), TimingPoint(1000, -100.0, uninherited=False, kiai=True)],
        )
        run = run_all(BeatmapSet([kantan, oni]))
        assert {i.check for i in run.issues} == {"kiai_consistency"}
        assert {i.beatmap for i in run.issues} == {None}

    def test_extend(self):
        first, second = CheckRun(), CheckRun()
        failure = CheckFailure("double_barlines", "Oni", "boom")
        second.failures.append(failure)
        first.extend(second)
        assert first.failures == [failure]
        assert first.issues == []
