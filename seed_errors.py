# seed_errors.py
# =====================================================================================
# Error taxonomy shared by every invoice seeder backend
# =====================================================================================


class SeedError(Exception):
    """Base class for everything the seeders raise on purpose."""


class ConfigurationError(SeedError, ValueError):
    """Invalid record count, batch size or date window. Raised before generation."""


class GenerationError(SeedError):
    """A collaborator of the record generator returned an unusable value."""


class LoadError(SeedError):
    """
    A batch could not be persisted.

    Covers an unreachable destination, a rejected row and a parameter that
    failed to serialize. The whole batch is treated as not persisted.

    Attributes:
        inserted (int): Rows accepted by flushes that completed before this one.
    """

    def __init__(self, message: str, inserted: int = 0):
        super().__init__(message)
        self.inserted = inserted
