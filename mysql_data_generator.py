# mysql_data_generator.py
# =====================================================================================
# MySQL Invoice Seeder — single multi-row VALUES insert
# =====================================================================================
# Table: invoices
#
# MySQL-specific notes:
#   - No array parameters → one INSERT with a (%s,...) group per row; the
#     parameters are flattened row by row from the aligned column arrays
#   - The statement for a 10k batch is ~1 MB, well under the default
#     max_allowed_packet (64 MB on 8.0)
#   - DECIMAL(12,2) keeps the two fractional digits exactly
# =====================================================================================

import logging
import os
import random
import sys
import threading
from typing import Optional

import pymysql

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
CREATE TABLE IF NOT EXISTS {table} (
    customer_id     INT,
    customer_name   VARCHAR(255),
    invoice_date    DATETIME,
    due_date        DATETIME,
    total_amount    DECIMAL(12,2),
    tax_amount      DECIMAL(12,2),
    status          VARCHAR(20)
) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
"""


def ensure_table(conn, table_name: str = 'invoices', fresh: bool = False):
    """
    Ensures the table exists. With ``fresh`` it is dropped first.
    """
    with conn.cursor() as cur:
        if fresh:
            # MySQL handles existence checks natively during the drop
            logger.info("Dropping table %s...", table_name)
            cur.execute(f"DROP TABLE IF EXISTS {table_name}")

        # IF NOT EXISTS keeps re-runs appending to the same table
        cur.execute(INVOICES_DDL.format(table=table_name))

    # DDL commits implicitly in MySQL; the explicit commit closes the open transaction
    conn.commit()
    logger.info("Table %s ready.", table_name)


# =====================================================================================
# Bulk loader
# =====================================================================================
ROW_PLACEHOLDER = "(" + ",".join(["%s"] * len(INVOICE_COLUMNS)) + ")"


def build_insert(table_name: str, row_count: int) -> str:
    return (
        f"INSERT INTO {table_name} ({', '.join(INVOICE_COLUMNS)}) VALUES "
        + ",".join([ROW_PLACEHOLDER] * row_count)
    )


class MySqlInvoiceLoader(BulkLoader):
    driver_errors = (pymysql.MySQLError,)
    dialect = 'mysql'

    def insert(self, cur, columns: InvoiceColumns) -> None:
        # Row-major flattening: parameter 7*i .. 7*i+6 all belong to invoice i
        params = [value for row in columns.rows for value in row]
        cur.execute(build_insert(self.table_name, columns.size), params)


# =====================================================================================
# Runner
# =====================================================================================
def run(host, user, password, database, port=3306, total_records=1000,
        batch_size: int = DEFAULT_BATCH_SIZE, window: Optional[DateWindow] = None,
        seed: Optional[int] = None, fresh: bool = False,
        cancel: Optional[threading.Event] = None, table_name: str = 'invoices') -> SeedSummary:
    # autocommit off so each batch is committed (or rolled back) as one unit
    try:
        conn = pymysql.connect(host=host, user=user, password=password, database=database,
                               port=port, charset='utf8mb4', autocommit=False)
    except pymysql.MySQLError as e:
        raise LoadError(f"mysql: cannot connect to {host}:{port}/{database}: {e}") from e

    try:
        # Make sure the destination table is there before generating anything
        try:
            ensure_table(conn, table_name, fresh)
        except pymysql.MySQLError as e:
            raise LoadError(f"mysql: cannot provision table {table_name}: {e}") from e

        seeder = InvoiceSeeder(MySqlInvoiceLoader(conn, table_name), batch_size=batch_size,
                               window=window, rng=random.Random(seed))
        return seeder.run(total_records, cancel)
    finally:
        # Close the connection whether the run finished, failed or was cancelled
        conn.close()


def main(argv=None) -> int:
    parser = build_parser("Seed a MySQL invoices table with synthetic data")
    parser.add_argument('--host', default=os.getenv('MYSQL_HOST', 'localhost'))
    parser.add_argument('--port', type=int, default=int(os.getenv('MYSQL_PORT', '3306')))
    parser.add_argument('--user', default=os.getenv('MYSQL_USER', 'sentinel'))
    parser.add_argument('--password', default=os.getenv('MYSQL_PASSWORD', 'Test_123_Password'))
    parser.add_argument('--database', default=os.getenv('MYSQL_DATABASE', 'citadel'))
    args = parse_args(parser, argv)

    return execute(
        lambda cancel: run(
            host=args.host,
            user=args.user,
            password=args.password,
            database=args.database,
            port=args.port,
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
