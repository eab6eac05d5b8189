"""Exception types shared across the canonicalization pipeline."""

from __future__ import annotations


class ReceiptChefError(Exception):
    """Base class for all receiptchef errors."""


class ValidationError(ReceiptChefError):
    """A canonicalize request did not match the expected shape."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class ClassifierError(ReceiptChefError):
    """A classifier batch could not be used."""


class ClassifierTimeoutError(ClassifierError):
    """The classifier batch call exceeded its deadline."""


class ClassifierResponseError(ClassifierError):
    """The classifier returned something that fails the row contract."""


class CacheReadError(ReceiptChefError):
    """Reading from the classification cache failed."""


class CacheWriteError(ReceiptChefError):
    """Writing to the classification cache failed."""
