# invoice_generator.py
# =====================================================================================
# Synthetic invoice records
# =====================================================================================
# Every field is drawn independently from a uniform range. The random source is
# always passed in by the caller so a seeded run can be replayed exactly.
# =====================================================================================

import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, NamedTuple, Optional

from faker import Faker

from seed_errors import ConfigurationError, GenerationError

# -------------------------------------------------------------------------------------
# Field constraints
# -------------------------------------------------------------------------------------
STATUSES = ('Paid', 'Pending', 'Overdue')

CUSTOMER_ID_RANGE = (1, 10000)            # half-open
TOTAL_CENTS_RANGE = (10000, 1000000)      # 100.00 .. 9999.99
TAX_CENTS_RANGE = (1000, 100000)          # 10.00 .. 999.99
MAX_DUE_DAYS = 90

DEFAULT_START_DATE = date(2021, 1, 1)
DEFAULT_END_DATE = date(2024, 6, 16)

INVOICE_COLUMNS = (
    'customer_id', 'customer_name', 'invoice_date', 'due_date',
    'total_amount', 'tax_amount', 'status',
)


class Invoice(NamedTuple):
    customer_id: int
    customer_name: str
    invoice_date: datetime
    due_date: datetime
    total_amount: Decimal
    tax_amount: Decimal
    status: str


@dataclass(frozen=True)
class DateWindow:
    """Inclusive range of calendar days an invoice may be dated on."""

    start: date = DEFAULT_START_DATE
    end: date = DEFAULT_END_DATE

    def __post_init__(self):
        if not isinstance(self.start, date) or not isinstance(self.end, date):
            raise ConfigurationError(
                f"Date window bounds must be dates, got {self.start!r} and {self.end!r}")
        # datetime is a date subclass; keep whole days so the last day stays reachable
        for name in ('start', 'end'):
            value = getattr(self, name)
            if isinstance(value, datetime):
                object.__setattr__(self, name, value.date())
        if self.end < self.start:
            raise ConfigurationError(f"Date window is inverted: {self.start} is after {self.end}")

    @property
    def days(self) -> int:
        return (self.end - self.start).days


class FakerNames:
    """
    Display-name source backed by Faker.

    The Faker instance draws from the same ``random.Random`` the generator uses,
    so seeding that one stream is enough to reproduce the whole dataset.
    """

    def __init__(self, rng: random.Random, locale: str = 'en_US'):
        self.fake = Faker(locale)
        self.fake.random = rng

    def __call__(self) -> str:
        return self.fake.name()


# -------------------------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------------------------
def random_day(rng: random.Random, window: DateWindow) -> datetime:
    day = window.start + timedelta(days=rng.randint(0, window.days))
    return datetime.combine(day, time())


def random_amount(rng: random.Random, cents_range: tuple) -> Decimal:
    # scaleb keeps the exponent at -2, so 100 cents renders as 1.00
    return Decimal(rng.randrange(*cents_range)).scaleb(-2)


def gen_invoice(rng: random.Random, window: DateWindow,
                names: Optional[Callable[[], str]] = None) -> Invoice:
    """
    Build one invoice from ``rng``.

    Pass ``names`` when generating in bulk; without it a new Faker instance is
    built for the call.
    """
    invoice_date = random_day(rng, window)
    due_date = invoice_date + timedelta(days=rng.randint(0, MAX_DUE_DAYS))

    total_amount = random_amount(rng, TOTAL_CENTS_RANGE)
    tax_amount = random_amount(rng, TAX_CENTS_RANGE)

    customer_id = rng.randrange(*CUSTOMER_ID_RANGE)
    customer_name = (names or FakerNames(rng))()
    if not isinstance(customer_name, str) or not customer_name.strip():
        raise GenerationError(f"Name source returned an unusable customer name: {customer_name!r}")

    return Invoice(
        customer_id=customer_id,
        customer_name=customer_name,
        invoice_date=invoice_date,
        due_date=due_date,
        total_amount=total_amount,
        tax_amount=tax_amount,
        status=rng.choice(STATUSES),
    )
