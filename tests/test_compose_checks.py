"""Tests for the compose checks."""

from __future__ import annotations

import pytest

from taiko_mapcheck.checks.base import Severity, Timestamp
from taiko_mapcheck.checks.compose import (
    check_mapset_pattern_lengths,
    check_pattern_lengths,
    check_rest_moments,
    check_smallest_snap,
    check_spinner_readability,
    check_unrankable_finishers,
)
from taiko_mapcheck.config import (
    DEFAULT_CONFIG,
    CheckConfig,
    FinisherTier,
    PatternLengthTier,
    RestMomentTier,
    RestRule,
)
from taiko_mapcheck.data.beatmap import (
    Beatmap,
    BeatmapSet,
    Difficulty,
    HitObject,
    HitSound,
    ObjectKind,
    TimingPoint,
)

BEAT = 400.0


def _circle(time: float, sound: HitSound = HitSound.NONE) -> HitObject:
    return HitObject(time, hit_sound=sound)


def _finisher(time: float, sound: HitSound = HitSound.NONE) -> HitObject:
    return _circle(time, sound | HitSound.FINISH)


def _stream(count: int, spacing: float, start: float = 0.0) -> list[HitObject]:
    return [_circle(start + i * spacing) for i in range(count)]


def _beatmap(
    objects: list[HitObject],
    difficulty: Difficulty | None = Difficulty.ONI,
    points: list[TimingPoint] | None = None,
) -> Beatmap:
    return Beatmap(
        version=difficulty.value if difficulty else "test",
        timing_points=points if points is not None else [TimingPoint(0, BEAT, 4)],
        hit_objects=objects,
        difficulty=difficulty,
    )


# ---------------------------------------------------------------------------
# Rest moments
# ---------------------------------------------------------------------------


class TestRestMoments:
    @pytest.fixture
    def two_beat_rests(self) -> CheckConfig:
        return CheckConfig(
            rest_moments={
                "oni": RestMomentTier(
                    label="2/1",
                    rules=[RestRule(gap_count=1, min_beats=2.0)],
                    minor_beats=21,
                    warning_beats=32,
                )
            }
        )

    def test_33_beats_is_one_warning(self, two_beat_rests):
        issues = list(check_rest_moments(_beatmap(_stream(34, BEAT)), two_beat_rests))
        assert len(issues) == 1
        issue = issues[0]
        assert issue.severity is Severity.WARNING
        assert issue.arguments == (Timestamp.of(0), Timestamp.of(33 * BEAT), "2/1", 33)
        assert issue.difficulties == frozenset({Difficulty.ONI})

    def test_minor_below_warning_limit(self, two_beat_rests):
        issues = list(check_rest_moments(_beatmap(_stream(26, BEAT)), two_beat_rests))
        assert [(i.severity, i.arguments[3]) for i in issues] == [(Severity.MINOR, 25)]

    def test_short_section_clean(self, two_beat_rests):
        assert list(check_rest_moments(_beatmap(_stream(20, BEAT)), two_beat_rests)) == []

    def test_default_oni_rests_on_every_beat(self):
        assert list(check_rest_moments(_beatmap(_stream(80, BEAT)))) == []

    def test_default_muzukashii_half_beat_stream(self):
        # 30 beats of 1/2 without a 3/2 gap or three 1/1 gaps
        beatmap = _beatmap(_stream(61, BEAT / 2), Difficulty.MUZUKASHII)
        issues = list(check_rest_moments(beatmap))
        assert [(i.severity, i.arguments[2], i.arguments[3]) for i in issues] == [
            (Severity.MINOR, "3/2 or 3x1/1", 30)
        ]

    def test_explicit_difficulties(self, two_beat_rests):
        beatmap = _beatmap(_stream(34, BEAT), difficulty=None)
        issues = list(check_rest_moments(beatmap, two_beat_rests, [Difficulty.ONI, Difficulty.URA]))
        assert len(issues) == 1

    def test_no_objects(self):
        assert list(check_rest_moments(_beatmap([]))) == []

    def test_no_timing_points(self):
        assert list(check_rest_moments(_beatmap(_stream(80, BEAT), points=[]))) == []


# ---------------------------------------------------------------------------
# Pattern lengths
# ---------------------------------------------------------------------------


class TestPatternLengths:
    @pytest.fixture
    def quarter_limit(self) -> CheckConfig:
        return CheckConfig(pattern_lengths={"oni": PatternLengthTier(limits={"1/4": 5})})

    def test_at_limit_is_minor(self, quarter_limit):
        issues = list(check_pattern_lengths(_beatmap(_stream(5, BEAT / 4)), quarter_limit))
        assert len(issues) == 1
        issue = issues[0]
        assert issue.severity is Severity.MINOR
        assert issue.arguments == (Timestamp.of(0), Timestamp.of(400), "1/4", 5)

    def test_over_limit_is_warning(self, quarter_limit):
        issues = list(check_pattern_lengths(_beatmap(_stream(6, BEAT / 4)), quarter_limit))
        assert [(i.severity, i.arguments[3]) for i in issues] == [(Severity.WARNING, 6)]

    def test_under_limit_clean(self, quarter_limit):
        assert list(check_pattern_lengths(_beatmap(_stream(4, BEAT / 4)), quarter_limit)) == []

    def test_separate_patterns_counted_separately(self, quarter_limit):
        objects = _stream(4, BEAT / 4) + _stream(4, BEAT / 4, start=2 * BEAT)
        assert list(check_pattern_lengths(_beatmap(objects), quarter_limit)) == []

    def test_futsuu_limit_without_kantan(self):
        beatmap = _beatmap(_stream(6, BEAT / 2), Difficulty.FUTSUU)
        issues = list(check_pattern_lengths(beatmap))
        assert [(i.severity, i.arguments[2], i.arguments[3]) for i in issues] == [
            (Severity.WARNING, "1/2", 6)
        ]
        assert list(check_pattern_lengths(beatmap, bottom_diff_kantan=True)) == []

    def test_mapset_with_kantan(self):
        futsuu = _beatmap(_stream(6, BEAT / 2), Difficulty.FUTSUU)
        kantan = _beatmap([], Difficulty.KANTAN)
        assert list(check_mapset_pattern_lengths(BeatmapSet([kantan, futsuu]))) == []

    def test_mapset_without_kantan(self):
        futsuu = _beatmap(_stream(6, BEAT / 2), Difficulty.FUTSUU)
        oni = _beatmap([], Difficulty.ONI)
        issues = list(check_mapset_pattern_lengths(BeatmapSet([futsuu, oni])))
        assert len(issues) == 1
        assert issues[0].beatmap == "futsuu"

    def test_no_objects(self):
        assert list(check_pattern_lengths(_beatmap([]))) == []


# ---------------------------------------------------------------------------
# Smallest snap
# ---------------------------------------------------------------------------


class TestSmallestSnap:
    def test_one_problem_per_run(self):
        # oni allows 1/8, i.e. 50ms at 150 BPM
        issues = list(check_smallest_snap(_beatmap([_circle(0), _circle(10), _circle(20)])))
        assert len(issues) == 1
        assert issues[0].severity is Severity.PROBLEM
        assert issues[0].arguments == (Timestamp.of(0, 10, 20),)

    def test_two_runs(self):
        objects = [_circle(t) for t in (0, 10, 1000, 1010, 1020)]
        issues = list(check_smallest_snap(_beatmap(objects)))
        assert [i.arguments[0].times for i in issues] == [(0.0, 10.0), (1000.0, 1010.0, 1020.0)]

    def test_allowed_snap_clean(self):
        assert list(check_smallest_snap(_beatmap(_stream(16, BEAT / 8)))) == []

    def test_tier_threshold(self):
        # 1/4 is fine for muzukashii but not for kantan
        beatmap = _beatmap(_stream(3, BEAT / 4), difficulty=None)
        issues = list(check_smallest_snap(beatmap))
        assert {d for i in issues for d in i.difficulties} == {
            Difficulty.KANTAN,
            Difficulty.FUTSUU,
        }

    def test_ignores_sliders(self):
        objects = [_circle(0), HitObject(10, ObjectKind.SLIDER, 300), _circle(400)]
        assert list(check_smallest_snap(_beatmap(objects))) == []

    def test_no_objects(self):
        assert list(check_smallest_snap(_beatmap([]))) == []


# ---------------------------------------------------------------------------
# Spinner readability
# ---------------------------------------------------------------------------


class TestSpinnerReadability:
    def test_close_spinner(self):
        objects = [_circle(0), HitObject(100, ObjectKind.SPINNER, 2000)]
        issues = list(check_spinner_readability(_beatmap(objects, difficulty=None)))
        assert {d for i in issues for d in i.difficulties} == {
            Difficulty.KANTAN,
            Difficulty.FUTSUU,
            Difficulty.MUZUKASHII,
        }
        assert all(i.severity is Severity.MINOR for i in issues)
        assert issues[0].arguments == (Timestamp.of(0, 100),)

    def test_measured_from_slider_end(self):
        objects = [HitObject(0, ObjectKind.SLIDER, 900), HitObject(1000, ObjectKind.SPINNER, 2000)]
        issues = list(check_spinner_readability(_beatmap(objects, Difficulty.KANTAN)))
        assert len(issues) == 1

    def test_far_spinner_clean(self):
        objects = [_circle(0), HitObject(400, ObjectKind.SPINNER, 2000)]
        assert list(check_spinner_readability(_beatmap(objects, difficulty=None))) == []

    def test_no_spinner(self):
        assert list(check_spinner_readability(_beatmap(_stream(4, 10)))) == []


# ---------------------------------------------------------------------------
# Unrankable finishers
# ---------------------------------------------------------------------------


class TestUnrankableFinishers:
    def _severities(self, objects, difficulty, config=DEFAULT_CONFIG):
        issues = check_unrankable_finishers(_beatmap(objects, difficulty), config)
        return [(i.severity, i.arguments) for i in issues]

    def test_kantan_finisher_too_close(self):
        objects = [_circle(0), _finisher(400), _circle(500)]
        assert self._severities(objects, Difficulty.KANTAN) == [
            (Severity.PROBLEM, (Timestamp.of(400),))
        ]

    def test_kantan_finisher_ending_pattern(self):
        objects = [_circle(0), _circle(400), _finisher(800), _circle(2000)]
        assert self._severities(objects, Difficulty.KANTAN) == []

    def test_kantan_finisher_mid_pattern(self):
        objects = [_circle(0), _finisher(400), _circle(800), _circle(2000)]
        assert self._severities(objects, Difficulty.KANTAN) == [
            (Severity.PROBLEM, (Timestamp.of(400),))
        ]

    def test_oni_previous_gap_is_warning(self):
        objects = [_circle(0), _finisher(50), _circle(1000)]
        assert self._severities(objects, Difficulty.ONI) == [
            (Severity.WARNING, (Timestamp.of(50),))
        ]

    def test_oni_next_gap_is_problem(self):
        objects = [_circle(0), _finisher(800), _circle(850)]
        assert self._severities(objects, Difficulty.ONI)[0][0] is Severity.PROBLEM

    def test_inner_oni_only_next_gap(self):
        objects = [_circle(0), _finisher(50), _circle(1000)]
        assert self._severities(objects, Difficulty.INNER_ONI) == []
        objects = [_circle(0), _finisher(800), _circle(850)]
        assert self._severities(objects, Difficulty.INNER_ONI)[0][0] is Severity.WARNING

    def test_same_colour(self):
        config = CheckConfig(
            finishers={
                "muzukashii": FinisherTier(
                    gap_divisor=4.0, next_gap=None, previous_gap=None, same_color="warning"
                )
            }
        )
        objects = [_circle(0), _finisher(200), _circle(400)]
        assert self._severities(objects, Difficulty.MUZUKASHII, config) == [
            (Severity.WARNING, (Timestamp.of(200),))
        ]
        # colour change into the finisher
        objects = [_circle(0, HitSound.CLAP), _finisher(200), _circle(400)]
        assert self._severities(objects, Difficulty.MUZUKASHII, config) == []
        # no predecessor counts as a change
        objects = [_finisher(200), _circle(400)]
        assert self._severities(objects, Difficulty.MUZUKASHII, config) == []

    def test_plain_circles_ignored(self):
        assert self._severities(_stream(8, 10), Difficulty.KANTAN) == []

    def test_no_objects(self):
        assert self._severities([], Difficulty.KANTAN) == []
