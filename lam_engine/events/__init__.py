"""Audit events for run activity."""

from .audit import AuditEvent, AuditEventType, AuditTrail

__all__ = ["AuditEvent", "AuditEventType", "AuditTrail"]
