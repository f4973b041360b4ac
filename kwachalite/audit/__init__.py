"""Audit logging package."""

from kwachalite.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
