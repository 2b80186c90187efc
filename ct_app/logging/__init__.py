"""
Logging configuration and utilities for the CT service.
"""
from .config import configure_logging, get_audit_logger, get_logger, log_status_transition

__all__ = ["configure_logging", "get_logger", "get_audit_logger", "log_status_transition"]
