# oracle_data_generator.py
# =====================================================================================
# Oracle Invoice Seeder - array DML
# =====================================================================================
# Table: invoices
#
# Oracle-specific notes:
#   executemany() binds every column as an array and ships the whole batch in
#   one round-trip (array DML), so no statement text grows with the batch.
#   NUMBER(12,2) for amounts, TIMESTAMP for the midnight dates,
#   VARCHAR2 for text. No CREATE TABLE IF NOT EXISTS before 23ai, hence the
#   data dictionary lookup.
# =====================================================================================

import logging
import os
import random
import sys
import threading
from typing import Optional

import oracledb

from invoice_batch import DEFAULT_BATCH_SIZE, InvoiceColumns
from invoice_generator import INVOICE_COLUMNS, DateWindow
from invoice_seeder import BulkLoader, InvoiceSeeder, SeedSummary
from seed_cli import build_parser, execute, parse_args, window_from_args
from seed_errors import LoadError

logger = logging.getLogger(__name__)

# =====================================================================================
# Database Helper: Ensure the invoices table exists
# =====================================================================================
INVOICES_DDL = """
CREATE TABLE {table} (
    customer_id     NUMBER(10),
    customer_name   VARCHAR2(255),
    invoice_date    TIMESTAMP,
    due_date        TIMESTAMP,
    total_amount    NUMBER(12,2),
    tax_amount      NUMBER(12,2),
    status          VARCHAR2(20)
)
"""


def ensure_table(conn, table_name: str = 'invoices', fresh: bool = False):
    """
    Ensures the table exists, creating it only when it is missing.

    Args:
        conn (oracledb.Connection): The active Oracle database connection object.
        table_name (str): The name of the table to check and create.
        fresh (bool): Drop an existing table of that name first.
    """
    with conn.cursor() as cur:
        # Oracle stores unquoted table names in uppercase
        cur.execute("SELECT COUNT(*) FROM user_tables WHERE table_name = UPPER(:tn)", tn=table_name)
        exists = cur.fetchone()[0] > 0

        # PURGE skips the recycle bin so the name is free for the create below
        if exists and fresh:
            logger.info("Dropping table %s...", table_name)
            cur.execute(f"DROP TABLE {table_name} PURGE")
            exists = False

        # Create the table only if it doesn't already exist
        if not exists:
            logger.info("Creating table %s...", table_name)
            cur.execute(INVOICES_DDL.format(table=table_name))

    # DDL auto-commits in Oracle; the commit ends the dictionary query's transaction
    conn.commit()
    logger.info("Table %s ready.", table_name)


# =====================================================================================
# Bulk loader
# =====================================================================================
INVOICES_INSERT = (
    "INSERT INTO {table} (" + ", ".join(INVOICE_COLUMNS) + ") VALUES ("
    + ", ".join(f":{i}" for i in range(1, len(INVOICE_COLUMNS) + 1)) + ")"
)


class OracleInvoiceLoader(BulkLoader):
    driver_errors = (oracledb.Error,)
    dialect = 'oracle'

    def insert(self, cur, columns: InvoiceColumns) -> None:
        # fixes the bind sizes up front so a long name late in the batch
        # does not force a rebind mid-array
        cur.setinputsizes(None, 255, None, None, None, None, 20)
        cur.executemany(INVOICES_INSERT.format(table=self.table_name), columns.rows)


# =====================================================================================
# Runner
# =====================================================================================
def run(user, password, dsn, total_records=1000, batch_size: int = DEFAULT_BATCH_SIZE,
        window: Optional[DateWindow] = None, seed: Optional[int] = None, fresh: bool = False,
        cancel: Optional[threading.Event] = None, table_name: str = 'invoices') -> SeedSummary:
    # Connect using the easy-connect DSN (host:port/service)
    try:
        conn = oracledb.connect(user=user, password=password, dsn=dsn)
    except oracledb.Error as e:
        raise LoadError(f"oracle: cannot connect to {dsn}: {e}") from e

    try:
        # Make sure the destination table is there before generating anything
        try:
            ensure_table(conn, table_name, fresh)
        except oracledb.Error as e:
            raise LoadError(f"oracle: cannot provision table {table_name}: {e}") from e

        # Each full batch goes out as one array-DML executemany and one commit
        seeder = InvoiceSeeder(OracleInvoiceLoader(conn, table_name), batch_size=batch_size,
                               window=window, rng=random.Random(seed))
        return seeder.run(total_records, cancel)
    finally:
        # Close the connection whether the run finished, failed or was cancelled
        conn.close()


def main(argv=None) -> int:
    # Thin mode is the default since python-oracledb 2.0, no Instant Client needed.
    parser = build_parser("Seed an Oracle invoices table with synthetic data")
    parser.add_argument('--user', default=os.getenv('ORACLE_USER', 'sentinel'))
    parser.add_argument('--password', default=os.getenv('ORACLE_PASSWORD', 'Test_123_Password'))
    parser.add_argument('--dsn', default=os.getenv('ORACLE_DSN', 'localhost:1521/FREEPDB1'))
    args = parse_args(parser, argv)

    return execute(
        lambda cancel: run(
            user=args.user,
            password=args.password,
            dsn=args.dsn,
            total_records=args.count,
            batch_size=args.batch_size,
            window=window_from_args(args),
            seed=args.seed,
            fresh=args.fresh,
            cancel=cancel,
            table_name=args.table,
        ),
        verbose=args.verbose,
    )


if __name__ == "__main__":
    sys.exit(main())
