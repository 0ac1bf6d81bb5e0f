"""CLI: Check osu!taiko difficulties against the ranking criteria.

Every JSON file given is one difficulty of the same mapset.

Usage:
    python scripts/check_beatmap.py kantan.json futsuu.json oni.json
    python scripts/check_beatmap.py oni.json --config configs/check.yaml
    python scripts/check_beatmap.py oni.json --only rest_moments smallest_snap -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def main() -> None:
    """Parse arguments, run every check and print the issues."""
    parser = argparse.ArgumentParser(
        description="Check osu!taiko difficulties for timing and pattern issues",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "beatmaps", type=Path, nargs="+", help="Beatmap JSON dumps, one per difficulty"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file overriding check thresholds",
    )
    parser.add_argument(
        "--only",
        nargs="+",
        default=None,
        metavar="CHECK",
        help="Run only these checks (registry names)",
    )
    parser.add_argument(
        "--min-severity",
        default="minor",
        choices=["minor", "warning", "problem"],
        dest="min_severity",
        help="Hide issues below this level",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    missing = [p for p in args.beatmaps if not p.exists()]
    if missing:
        parser.error(f"Beatmap file not found: {missing[0]}")

    from taiko_mapcheck.checks import (
        CheckRun,
        Severity,
        get_check,
        run_all,
        run_beatmap_checks,
        run_mapset_checks,
    )
    from taiko_mapcheck.config import load_config
    from taiko_mapcheck.data import parse_mapset_files

    try:
        config = load_config(args.config)
        beatmap_set = parse_mapset_files(args.beatmaps)
        checks = [get_check(name) for name in args.only] if args.only else None
    except (ValueError, KeyError) as exception:
        parser.error(str(exception))

    if checks is None:
        run = run_all(beatmap_set, config)
    else:
        run = CheckRun()
        for beatmap in beatmap_set.beatmaps:
            run.extend(run_beatmap_checks(beatmap, config, checks))
        run.extend(run_mapset_checks(beatmap_set, config, checks))
        run.sort()

    threshold = Severity.parse(args.min_severity)
    for issue in run.issues:
        if issue.severity >= threshold:
            print(issue.format())
    for failure in run.failures:
        print(f"failed   {failure.check:<28} [{failure.beatmap}] {failure.error}")

    print(
        f"{run.count(Severity.PROBLEM)} problems, {run.count(Severity.WARNING)} warnings, "
        f"{run.count(Severity.MINOR)} minor"
    )
    if run.has_problems:
        sys.exit(1)


if __name__ == "__main__":
    main()
