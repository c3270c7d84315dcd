from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class MalformedNumericInputError(DomainError):
    """A monetary value is not a finite decimal number."""


class InvalidAddressError(DomainError):
    """A token or pool address is not a 20-byte hex address."""


class PoolFinalizedError(DomainError):
    """An enrichment stage was invoked on a pool that was already finalized."""
