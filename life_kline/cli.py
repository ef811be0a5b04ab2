"""
CLI wrapper for build_life_report().

Usage:
    life-kline --birth-date YYYY-MM-DD --birth-time HH:MM --gender male|female \
        [--kline-only] [--reference-year YEAR]
"""

import argparse
import json
import logging
import os
import sys

from .logic import build_life_report


def main(argv=None):
    parser = argparse.ArgumentParser(description="Compute a BaZi chart and its life K-line.")
    parser.add_argument("--birth-date", required=True, dest="birth_date")
    parser.add_argument("--birth-time", required=True, dest="birth_time")
    parser.add_argument("--gender", required=True, choices=["male", "female", "m", "f", "男", "女"])
    parser.add_argument("--kline-only", action="store_true", dest="kline_only",
                        help="print only the fortune curve and peak window")
    parser.add_argument("--reference-year", type=int, dest="reference_year", default=None,
                        help="year used for the current luck pillar (default: this year)")

    args = parser.parse_args(argv)
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

    report = build_life_report(args.birth_date, args.birth_time, args.gender)
    if report is None:
        print(f"Invalid birth date/time: {args.birth_date} {args.birth_time}", file=sys.stderr)
        return 1

    result = report.kline.to_dict() if args.kline_only else report.to_dict(args.reference_year)
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
