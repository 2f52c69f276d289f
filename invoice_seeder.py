# invoice_seeder.py
# =====================================================================================
# Generate -> batch -> bulk-load pipeline
# =====================================================================================
# InvoiceSeeder drives the loop; a BulkLoader subclass per database engine turns
# each full batch into exactly one set-based INSERT and commits it.
# =====================================================================================

import enum
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from invoice_batch import DEFAULT_BATCH_SIZE, InvoiceBatch, InvoiceColumns, to_columns
from invoice_generator import DateWindow, FakerNames, Invoice, gen_invoice
from seed_errors import ConfigurationError, LoadError

logger = logging.getLogger(__name__)


# =====================================================================================
# Bulk loader base
# =====================================================================================
class BulkLoader:
    """
    Persists one batch per call with a single statement.

    Subclasses set ``driver_errors`` to the DB-API ``Error`` class of their
    driver and implement :meth:`insert`, which receives an open cursor and the
    batch as index-aligned column arrays.
    """

    driver_errors: tuple = ()
    dialect = 'generic'

    def __init__(self, conn, table_name: str = 'invoices'):
        self.conn = conn
        self.table_name = table_name

    def insert(self, cur, columns: InvoiceColumns) -> None:
        raise NotImplementedError

    def load(self, batch: Sequence[Invoice]) -> None:
        if not batch:
            return
        columns = to_columns(batch)
        try:
            with self.conn.cursor() as cur:
                self.insert(cur, columns)
            self.conn.commit()
        except self.driver_errors as e:
            self._rollback()
            raise LoadError(
                f"{self.dialect}: failed to insert batch of {columns.size} into {self.table_name}: {e}"
            ) from e
        logger.debug("%s: committed %d rows into %s", self.dialect, columns.size, self.table_name)

    def _rollback(self) -> None:
        try:
            self.conn.rollback()
        except self.driver_errors as e:
            # The connection is usually gone at this point; the load error is what matters.
            logger.warning("%s: rollback after failed batch also failed: %s", self.dialect, e)


# =====================================================================================
# Orchestrator
# =====================================================================================
class SeedState(enum.Enum):
    IDLE = 'idle'
    GENERATING = 'generating'
    FLUSHING = 'flushing'
    FINAL_FLUSH = 'final_flush'
    DONE = 'done'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


@dataclass
class SeedSummary:
    inserted: int
    elapsed: float
    flushes: int = 0
    cancelled: bool = False

    @property
    def rate(self) -> float:
        return self.inserted / self.elapsed if self.elapsed > 0 else 0.0


class InvoiceSeeder:
    """
    Fills a batch with generated invoices and hands it to ``loader`` whenever it
    is full, plus once more for the remainder.

    Args:
        loader: Anything with a ``load(batch)`` method that raises LoadError.
        batch_size (int): Capacity of the reused batch buffer.
        window (DateWindow): Days invoices may be dated on.
        rng (random.Random, optional): Entropy stream for every draw. A fresh
            unseeded one is created when omitted.
        names (callable, optional): Customer name source. Defaults to Faker
            bound to ``rng``.
    """

    def __init__(self, loader, batch_size: int = DEFAULT_BATCH_SIZE,
                 window: Optional[DateWindow] = None, rng: Optional[random.Random] = None,
                 names: Optional[Callable[[], str]] = None):
        self.loader = loader
        self.batch = InvoiceBatch(batch_size)
        self.window = window or DateWindow()
        self.rng = rng or random.Random()
        self.names = names or FakerNames(self.rng)
        self.state = SeedState.IDLE
        self.inserted = 0
        self.flushes = 0

    def _flush(self) -> None:
        pending = self.batch.drain()
        self.loader.load(pending)
        self.batch.clear()
        self.inserted += len(pending)
        self.flushes += 1

    def run(self, total: int, cancel: Optional[threading.Event] = None) -> SeedSummary:
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ConfigurationError(f"Invoice count must be a non-negative integer, got {total!r}")

        self.batch.clear()
        self.inserted = 0
        self.flushes = 0
        start_time = time.perf_counter()

        try:
            self.state = SeedState.GENERATING
            for _ in range(total):
                if cancel is not None and cancel.is_set():
                    return self._cancelled(start_time)

                self.batch.push(gen_invoice(self.rng, self.window, self.names))

                if self.batch.is_full():
                    self.state = SeedState.FLUSHING
                    self._flush()
                    logger.info("Inserted %d/%d invoices", self.inserted, total)
                    self.state = SeedState.GENERATING

            # a cancel that lands after the last full flush leaves nothing to drop
            if len(self.batch) and cancel is not None and cancel.is_set():
                return self._cancelled(start_time)

            if len(self.batch):
                self.state = SeedState.FINAL_FLUSH
                self._flush()
                logger.info("Inserted %d/%d invoices", self.inserted, total)
        except LoadError as e:
            self.state = SeedState.FAILED
            e.inserted = self.inserted
            raise
        except BaseException:
            self.state = SeedState.FAILED
            raise

        self.state = SeedState.DONE
        return SeedSummary(self.inserted, time.perf_counter() - start_time, self.flushes)

    def _cancelled(self, start_time: float) -> SeedSummary:
        dropped = len(self.batch)
        self.batch.clear()
        self.state = SeedState.CANCELLED
        logger.warning("Seeding cancelled after %d invoices; %d unflushed invoices dropped",
                       self.inserted, dropped)
        return SeedSummary(self.inserted, time.perf_counter() - start_time, self.flushes,
                           cancelled=True)
