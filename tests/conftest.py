import random
from datetime import date

import pytest

from invoice_batch import to_columns
from invoice_generator import DateWindow, gen_invoice
from seed_errors import LoadError


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self._fetch = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def _maybe_fail(self):
        if self.conn.fail_with is not None:
            raise self.conn.fail_with

    def execute(self, sql, params=None, **kwargs):
        self._maybe_fail()
        self.conn.statements.append(('execute', sql, params if params is not None else kwargs))
        self._fetch = [self.conn.fetch_result]

    def executemany(self, sql, rows):
        self._maybe_fail()
        self.conn.statements.append(('executemany', sql, rows))

    def setinputsizes(self, *sizes):
        self.conn.input_sizes.append(sizes)

    def fetchone(self):
        return self._fetch.pop(0) if self._fetch else None


class FakeConnection:
    """Just enough of a DB-API connection to record what a loader sends."""

    def __init__(self, fail_with=None, fetch_result=(0,)):
        self.fail_with = fail_with
        self.fetch_result = fetch_result
        self.statements = []
        self.input_sizes = []
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class RecordingLoader:
    """Keeps the shape of every flush instead of writing anywhere."""

    def __init__(self, fail_on=None, on_load=None):
        self.fail_on = fail_on
        self.on_load = on_load
        self.calls = 0
        self.batch_sizes = []
        self.column_lengths = []
        self.batches = []

    def load(self, batch):
        self.calls += 1
        if self.fail_on is not None and self.calls == self.fail_on:
            raise LoadError("destination rejected the batch")
        columns = to_columns(batch)
        self.batch_sizes.append(len(batch))
        self.column_lengths.append([len(column) for column in columns])
        self.batches.append(list(batch))
        if self.on_load is not None:
            self.on_load(self)


class CountingNames:
    def __init__(self, name='Jane Doe'):
        self.name = name
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.name


@pytest.fixture
def fake_conn():
    return FakeConnection()


@pytest.fixture
def names():
    return CountingNames()


@pytest.fixture
def window():
    return DateWindow(date(2021, 1, 1), date(2024, 6, 16))


@pytest.fixture
def sample_batch(window):
    rng = random.Random(42)
    return [gen_invoice(rng, window, CountingNames(f'Customer {i}')) for i in range(5)]


@pytest.fixture
def make_loader():
    return RecordingLoader
