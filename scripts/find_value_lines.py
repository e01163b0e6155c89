# scripts/find_value_lines.py
"""
Price over/under lines for a fixture from two teams' saved match histories.

Input is a JSON file shaped like::

    {
      "home": [{"corners": 6, "yellowcards": 2, "occurred_at": "..."}, ...],
      "away": [{"corners": 4, "yellowcards": 1}, ...]
    }

Each list holds one team's recent matches (flat field → value mappings, most
recent last unless ``occurred_at`` is given).

Usage:
    python scripts/find_value_lines.py fixture.json
    python scripts/find_value_lines.py fixture.json --target 0.65 --min 0.63 --max 0.67 --json
"""

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from valueline.core.line_config import LineSearchConfig
from valueline.schemas import ValueLineOut
from valueline.services.value_lines import find_value_lines

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Find fair-priced over/under value lines")
    parser.add_argument("path", help="JSON file with 'home' and 'away' record lists")
    parser.add_argument("--target", type=float, default=None, help="Target probability")
    parser.add_argument("--min", dest="min_prob", type=float, default=None, help="Band lower edge")
    parser.add_argument("--max", dest="max_prob", type=float, default=None, help="Band upper edge")
    parser.add_argument("--fields", default=None, help="Comma-separated markets (default from env)")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of a table")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        with open(args.path, encoding="utf-8") as fh:
            fixture = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Could not read %s: %s", args.path, e)
        return 1

    try:
        recommendations = find_value_lines(
            fixture.get("home", []),
            fixture.get("away", []),
            target_probability=args.target,
            min_probability=args.min_prob,
            max_probability=args.max_prob,
            fields=args.fields.split(",") if args.fields else None,
            config=LineSearchConfig.from_env(),
        )
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    rows = [ValueLineOut.from_recommendation(r) for r in recommendations]

    if args.json:
        print(json.dumps([row.model_dump() for row in rows], indent=2))
        return 0

    if not rows:
        print("No lines inside the acceptance band.")
        return 0

    print(f"{'Market':<18}{'Pick':<14}{'Prob':>7}{'Fair':>7}{'US':>7}{'Frac':>7}  {'Pred':>6}  {'n':>3}  Conf")
    print("-" * 80)
    for row in rows:
        pick = f"{row.side.title()} {row.line:g}"
        print(
            f"{row.market:<18}{pick:<14}{row.percentage + '%':>7}{row.decimal_odds:>7}"
            f"{row.american_odds:>7}{row.fractional_odds:>7}  {row.prediction:>6}  "
            f"{row.sample_size:>3}  {row.confidence}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
