"""Transaction form validation."""

from litfunds.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
