from __future__ import annotations


class HirelaneError(Exception):
    """Base class for every error raised by the hiring board core."""


class StorageUnavailable(HirelaneError):
    """The durable medium could not be opened or has an unsupported schema."""


class NotFound(HirelaneError):
    def __init__(self, table: str, key: object):
        super().__init__(f"{table} {key} not found")
        self.table = table
        self.key = key


class ValidationError(HirelaneError):
    """A value was rejected before any write took place."""


class SimulatedNetworkFailure(HirelaneError):
    """Injected failure on a mutating route."""
