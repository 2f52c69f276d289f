# seed_cli.py
# =====================================================================================
# Command-line plumbing shared by the per-database seeders
# =====================================================================================

import argparse
import logging
import os
import re
import signal
import threading
from datetime import date
from typing import Callable, List, Optional

from dotenv import load_dotenv

from invoice_batch import DEFAULT_BATCH_SIZE
from invoice_generator import DEFAULT_END_DATE, DEFAULT_START_DATE, DateWindow
from invoice_seeder import SeedSummary
from seed_errors import SeedError

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'

TABLE_NAME_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]{0,62}$')


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def _non_negative_int(value: str) -> int:
    try:
        count = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if count < 0:
        raise argparse.ArgumentTypeError(f"must not be negative, got {count}")
    return count


def _positive_int(value: str) -> int:
    count = _non_negative_int(value)
    if count == 0:
        raise argparse.ArgumentTypeError("must be at least 1")
    return count


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an ISO date (YYYY-MM-DD), got {value!r}")


def _table_name(value: str) -> str:
    # interpolated into DDL and INSERT text, so plain identifiers only
    if not TABLE_NAME_RE.match(value):
        raise argparse.ArgumentTypeError(f"not a plain table name: {value!r}")
    return value


def build_parser(description: str) -> argparse.ArgumentParser:
    """Arguments every backend accepts; callers add their connection options."""
    load_dotenv()
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument('count', type=_non_negative_int,
                        help='Number of invoices to generate')
    parser.add_argument('--batch-size', type=_positive_int,
                        default=os.getenv("SEED_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)),
                        help=f'Invoices per INSERT (default {DEFAULT_BATCH_SIZE})')
    parser.add_argument('--start-date', type=_iso_date, default=DEFAULT_START_DATE,
                        help=f'First possible invoice date (default {DEFAULT_START_DATE})')
    parser.add_argument('--end-date', type=_iso_date, default=DEFAULT_END_DATE,
                        help=f'Last possible invoice date (default {DEFAULT_END_DATE})')
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed for the random stream, for reproducible datasets')
    parser.add_argument('--table', type=_table_name, default=os.getenv('SEED_TABLE', 'invoices'),
                        help='Destination table (default invoices)')
    parser.add_argument('--fresh', action='store_true',
                        help='Drop and recreate the invoices table before loading')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def parse_args(parser: argparse.ArgumentParser, argv: Optional[List[str]] = None) -> argparse.Namespace:
    args = parser.parse_args(argv)
    if args.end_date < args.start_date:
        parser.error(f"--end-date {args.end_date} is before --start-date {args.start_date}")
    return args


def window_from_args(args: argparse.Namespace) -> DateWindow:
    return DateWindow(args.start_date, args.end_date)


def cancel_on_interrupt() -> threading.Event:
    """Event that is set on the first Ctrl-C; a second one interrupts as usual."""
    cancel = threading.Event()

    def _handler(signum, frame):
        logger.warning("Interrupt received, stopping after the current batch")
        cancel.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)
    return cancel


def report(summary: SeedSummary) -> None:
    if summary.cancelled:
        print(f"Cancelled: inserted {summary.inserted} invoices in: {summary.elapsed:.2f}s")
    else:
        print(f"Inserted {summary.inserted} invoices in: {summary.elapsed:.2f}s "
              f"({summary.rate:,.0f} rows/s, {summary.flushes} batches)")


def execute(seed: Callable[[threading.Event], SeedSummary], verbose: bool = False) -> int:
    """Run ``seed`` with logging and Ctrl-C handling; map failures to an exit status."""
    configure_logging(verbose)
    previous_handler = signal.getsignal(signal.SIGINT)
    cancel = cancel_on_interrupt()
    try:
        summary = seed(cancel)
    except SeedError as e:
        logger.error("%s", e)
        inserted = getattr(e, 'inserted', 0)
        if inserted:
            logger.error("%d invoices were committed before the failure", inserted)
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)
    report(summary)
    return 130 if summary.cancelled else 0
