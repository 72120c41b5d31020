"""Validation package."""

from pixelledger.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
