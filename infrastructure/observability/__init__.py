"""
Observability: structured logging and context management.

Provides:
- Contextual logging with builder operation/taxonomy/term id fields
- Log rotation and file management
- Third-party library log level control
"""

from infrastructure.observability.logging import (
    clear_log_context,
    configure_logging,
    set_log_context,
)

__all__ = [
    "configure_logging",
    "set_log_context",
    "clear_log_context",
]
