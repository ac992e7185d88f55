"""Audit logging package."""

from budget_ledger.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
