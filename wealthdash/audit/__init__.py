"""Audit logging package."""

from wealthdash.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
