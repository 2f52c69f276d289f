# invoice_batch.py
# =====================================================================================
# Fixed-capacity batch buffer and the row -> column transposition used by loaders
# =====================================================================================

from typing import List, NamedTuple, Sequence

from invoice_generator import Invoice
from seed_errors import ConfigurationError

DEFAULT_BATCH_SIZE = 10000


class InvoiceColumns(NamedTuple):
    """Seven index-aligned arrays, one per ``invoices`` column."""

    customer_id: list
    customer_name: list
    invoice_date: list
    due_date: list
    total_amount: list
    tax_amount: list
    status: list

    @property
    def size(self) -> int:
        return len(self.customer_id)

    @property
    def rows(self) -> List[tuple]:
        return list(zip(*self))


class InvoiceBatch:
    """
    Ordered buffer that holds at most ``capacity`` invoices.

    Callers check :meth:`is_full` after every push and flush + :meth:`clear`
    before pushing again. Pushing into a full batch raises instead of dropping
    the record.
    """

    def __init__(self, capacity: int = DEFAULT_BATCH_SIZE):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ConfigurationError(f"Batch capacity must be a positive integer, got {capacity!r}")
        self.capacity = capacity
        self._items: List[Invoice] = []

    def __len__(self) -> int:
        return len(self._items)

    def push(self, invoice: Invoice) -> None:
        if len(self._items) >= self.capacity:
            raise BufferError(f"Batch already holds {self.capacity} invoices; flush before pushing")
        self._items.append(invoice)

    def is_full(self) -> bool:
        return len(self._items) >= self.capacity

    def drain(self) -> List[Invoice]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()


def to_columns(batch: Sequence[Invoice]) -> InvoiceColumns:
    columns = InvoiceColumns([], [], [], [], [], [], [])
    for invoice in batch:
        for column, value in zip(columns, invoice):
            column.append(value)
    return columns
