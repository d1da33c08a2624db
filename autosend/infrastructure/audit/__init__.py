"""
Audit forwarding for auto-send decisions and delta feedback.
"""

from autosend.infrastructure.audit.audit_logger import AuditLogger, AuditSink, audit_logger

__all__ = ["AuditLogger", "AuditSink", "audit_logger"]
