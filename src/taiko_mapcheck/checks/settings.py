"""Difficulty settings check: HP drain and overall difficulty."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator

from taiko_mapcheck.checks.base import (
    Issue,
    Severity,
    covered_tiers,
    issue_for,
    select_difficulties,
)
from taiko_mapcheck.config import DEFAULT_CONFIG, CheckConfig, SettingsConfig
from taiko_mapcheck.data.beatmap import Beatmap, Difficulty

logger = logging.getLogger(__name__)


def normalize_hp_with_drain(hp: float, drain_ms: float, settings: SettingsConfig) -> float:
    """Adjust a recommended HP for drain time.

    Short maps get one point more, long maps one or two less; adjusted
    values are rounded up to whole numbers.
    """
    if drain_ms <= settings.short_drain_ms:
        return float(math.ceil(hp + 1))
    if drain_ms >= settings.very_long_drain_ms:
        return float(math.ceil(hp - 2))
    if drain_ms >= settings.long_drain_ms:
        return float(math.ceil(hp - 1))
    return hp


def hp_od_tiers(config: CheckConfig) -> tuple[Difficulty, ...]:
    """Tiers with both an HP and an OD recommendation."""
    settings = config.settings
    return tuple(
        d for d in covered_tiers(settings.recommended_hp) if d.value in settings.recommended_od
    )


def _deviation(
    name: str, recommended: float, current: float, warning_delta: float
) -> tuple[Severity, str] | None:
    delta = abs(current - recommended)
    if delta > warning_delta:
        return Severity.WARNING, f"{name}_warning"
    if delta > 0:
        return Severity.MINOR, f"{name}_minor"
    return None


def check_hp_od(
    beatmap: Beatmap,
    config: CheckConfig = DEFAULT_CONFIG,
    difficulties: Iterable[Difficulty] | None = None,
) -> Iterator[Issue]:
    """Compare HP and OD against the tier's recommendation.

    Issue arguments: ``(recommended, current)``; the variant tells HP
    from OD ("hp_warning", "od_minor", ...).
    """
    settings = config.settings
    tiers = select_difficulties(hp_od_tiers(config), beatmap, difficulties)

    # round() is half-to-even, which is what the client shows
    hp = round(beatmap.hp, 2)
    od = round(beatmap.od, 2)
    drain = beatmap.get_drain_time()
    logger.debug("%r: hp=%s od=%s drain=%.0fms", beatmap.version, hp, od, drain)

    for diff in tiers:
        recommended_hp = normalize_hp_with_drain(settings.recommended_hp[diff.value], drain, settings)
        recommended_od = settings.recommended_od[diff.value]
        checks = (
            ("hp", recommended_hp, hp, settings.hp_warning_delta),
            ("od", recommended_od, od, settings.od_warning_delta),
        )
        for name, recommended, current, warning_delta in checks:
            found = _deviation(name, recommended, current, warning_delta)
            if found is None:
                continue
            severity, variant = found
            yield issue_for(
                "hp_od",
                severity,
                recommended,
                current,
                difficulties=(diff,),
                variant=variant,
                beatmap=beatmap,
            )
