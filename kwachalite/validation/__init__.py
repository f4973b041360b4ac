"""Validation package."""

from kwachalite.validation.validator import RecordValidator

__all__ = ["RecordValidator"]
