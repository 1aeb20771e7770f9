import argparse
import sys
from datetime import date, datetime

from production_volume.data.models import DateRange
from production_volume.presentation.console import (
    render_json,
    render_pivot,
    render_production,
)
from production_volume.utils.exceptions import DataAccessError
from production_volume.utils.logger import get_logger

logger = get_logger(__name__)


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Production volume by plant and transaction date"
    )

    parser.add_argument(
        "--start",
        type=_parse_date,
        required=True,
        help="First transaction date (YYYY-MM-DD).",
    )

    parser.add_argument(
        "--end",
        type=_parse_date,
        default=None,
        help="Last transaction date (YYYY-MM-DD). Defaults to --start.",
    )

    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--json",
        action="store_true",
        help="Print the series in the chart endpoint's JSON shape",
    )
    output.add_argument(
        "--pivot",
        action="store_true",
        help="Print a date x plant matrix instead of the flat series",
    )

    parser.add_argument(
        "--purge",
        action="store_true",
        help="Delete cached rows for the range instead of reporting",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort live aggregation after this many seconds",
    )

    return parser


def main(argv=None, service=None, cache_store=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        date_range = DateRange(args.start, args.end or args.start)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    try:
        if args.purge:
            if cache_store is None:
                from production_volume.data.cache_store import CacheStore
                from production_volume.utils.db_utils import get_cache_engine

                cache_store = CacheStore(get_cache_engine())
            cache_store.ensure_schema()
            removed = cache_store.purge(date_range)
            print(f"Purged {removed} cached rows for {date_range}")
            return 0

        if service is None:
            from production_volume.services.production_service import build_default_service

            service = build_default_service()

        records = service.get_production_data(
            date_range.start, date_range.end, timeout=args.timeout
        )
    except DataAccessError as exc:
        logger.error("Production report failed for %s: %s", date_range, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(render_json(records))
    elif args.pivot:
        print(render_pivot(records), end="")
    else:
        print(render_production(date_range, records), end="")

    return 0


if __name__ == "__main__":
    sys.exit(main())
