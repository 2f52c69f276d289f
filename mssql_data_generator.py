# mssql_data_generator.py
# =====================================================================================
# SQL Server Invoice Seeder — OPENJSON set-based insert
# =====================================================================================
# Table: invoices
#
# SQL Server-specific notes:
#   - pymssql has no array binding and a statement is capped at 2100
#     parameters, so the batch travels as ONE NVARCHAR(MAX) JSON document of
#     aligned rows and OPENJSON expands it into a rowset server-side
#   - OPENJSON needs database compatibility level 130 (SQL Server 2016) or later
#   - DATETIME2 for timestamps, DECIMAL(12,2) for amounts; the amounts are sent
#     as strings so they never pass through a float
# =====================================================================================

import json
import logging
import os
import random
import sys
import threading
from typing import Optional

import pymssql

from invoice_batch import DEFAULT_BATCH_SIZE, InvoiceColumns
from invoice_generator import DateWindow
from invoice_seeder import BulkLoader, InvoiceSeeder, SeedSummary
from seed_cli import build_parser, execute, parse_args, window_from_args
from seed_errors import LoadError

logger = logging.getLogger(__name__)

# =====================================================================================
# Database Helpers: Ensure the database and the invoices table exist
# =====================================================================================
INVOICES_DDL = """
IF NOT EXISTS (SELECT * FROM sysobjects WHERE name='{table}' AND xtype='U')
CREATE TABLE {table} (
    customer_id     INT,
    customer_name   NVARCHAR(255),
    invoice_date    DATETIME2,
    due_date        DATETIME2,
    total_amount    DECIMAL(12,2),
    tax_amount      DECIMAL(12,2),
    status          NVARCHAR(20)
)
"""


def ensure_database(server, user, password, database, port):
    """Create the target database if it doesn't exist (connect to master first)"""
    # autocommit=True is required because CREATE DATABASE cannot run inside a transaction
    conn = pymssql.connect(server=server, user=user, password=password,
                           database='master', port=port, autocommit=True)
    try:
        with conn.cursor() as cur:
            cur.execute("""
                IF NOT EXISTS (SELECT name FROM sys.databases WHERE name = %s)
                BEGIN
                    DECLARE @sql NVARCHAR(300) = N'CREATE DATABASE ' + QUOTENAME(%s);
                    EXEC (@sql);
                END
            """, (database, database))
        logger.info("Database '%s' is ready.", database)
    finally:
        conn.close()


def ensure_table(conn, table_name: str = 'invoices', fresh: bool = False):
    """
    Ensures the table exists. With ``fresh`` it is dropped first.
    """
    with conn.cursor() as cur:
        # DROP TABLE IF EXISTS needs SQL Server 2016, same floor as OPENJSON
        if fresh:
            logger.info("Dropping table %s...", table_name)
            cur.execute(f"DROP TABLE IF EXISTS {table_name}")

        # No CREATE TABLE IF NOT EXISTS in T-SQL, so the DDL guards on sysobjects
        cur.execute(INVOICES_DDL.format(table=table_name))

    # pymssql opens a transaction implicitly; commit so the DDL is visible to the loader
    conn.commit()
    logger.info("Table %s ready.", table_name)


# =====================================================================================
# Bulk loader
# =====================================================================================
INVOICES_INSERT = """
INSERT INTO {table} (customer_id, customer_name, invoice_date, due_date, total_amount, tax_amount, status)
SELECT customer_id, customer_name, invoice_date, due_date, total_amount, tax_amount, status
FROM OPENJSON(%s) WITH (
    customer_id     INT             '$[0]',
    customer_name   NVARCHAR(255)   '$[1]',
    invoice_date    DATETIME2       '$[2]',
    due_date        DATETIME2       '$[3]',
    total_amount    DECIMAL(12,2)   '$[4]',
    tax_amount      DECIMAL(12,2)   '$[5]',
    status          NVARCHAR(20)    '$[6]'
)
"""


def columns_to_json(columns: InvoiceColumns) -> str:
    """One JSON array per row, positions matching ``INVOICE_COLUMNS``."""
    rows = zip(
        columns.customer_id,
        columns.customer_name,
        (d.isoformat() for d in columns.invoice_date),
        (d.isoformat() for d in columns.due_date),
        (str(a) for a in columns.total_amount),
        (str(a) for a in columns.tax_amount),
        columns.status,
    )
    return json.dumps([list(row) for row in rows], ensure_ascii=False)


class MsSqlInvoiceLoader(BulkLoader):
    driver_errors = (pymssql.Error,)
    dialect = 'mssql'

    def insert(self, cur, columns: InvoiceColumns) -> None:
        try:
            payload = columns_to_json(columns)
        except (TypeError, ValueError) as e:
            raise LoadError(f"mssql: cannot serialize batch of {columns.size}: {e}") from e
        cur.execute(INVOICES_INSERT.format(table=self.table_name), (payload,))


# =====================================================================================
# Runner
# =====================================================================================
def run(server, user, password, database, port=1433, total_records=1000,
        batch_size: int = DEFAULT_BATCH_SIZE, window: Optional[DateWindow] = None,
        seed: Optional[int] = None, fresh: bool = False,
        cancel: Optional[threading.Event] = None, table_name: str = 'invoices') -> SeedSummary:
    # Create the database through master first, then connect to it directly
    try:
        ensure_database(server, user, password, database, port)
        conn = pymssql.connect(server=server, user=user, password=password,
                               database=database, port=port)
    except pymssql.Error as e:
        raise LoadError(f"mssql: cannot connect to {server}:{port}/{database}: {e}") from e

    try:
        # Make sure the destination table is there before generating anything
        try:
            ensure_table(conn, table_name, fresh)
        except pymssql.Error as e:
            raise LoadError(f"mssql: cannot provision table {table_name}: {e}") from e

        # Each full batch is one OPENJSON insert followed by a commit
        seeder = InvoiceSeeder(MsSqlInvoiceLoader(conn, table_name), batch_size=batch_size,
                               window=window, rng=random.Random(seed))
        return seeder.run(total_records, cancel)
    finally:
        # Close the connection whether the run finished, failed or was cancelled
        conn.close()


def main(argv=None) -> int:
    parser = build_parser("Seed a SQL Server invoices table with synthetic data")
    parser.add_argument('--server', default=os.getenv('MSSQL_SERVER', 'localhost'))
    parser.add_argument('--port', type=int, default=int(os.getenv('MSSQL_PORT', '1433')))
    parser.add_argument('--user', default=os.getenv('MSSQL_USER', 'sa'))
    parser.add_argument('--password', default=os.getenv('MSSQL_PASSWORD', 'Test_123_Password'))
    parser.add_argument('--database', default=os.getenv('MSSQL_DATABASE', 'citadel'))
    args = parse_args(parser, argv)

    return execute(
        lambda cancel: run(
            server=args.server,
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
