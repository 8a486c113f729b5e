"""
Logging setup with contextvars-based metadata injection.

- Adds the current builder operation, taxonomy and term id into every log line (via contextvars).
- Supports console-only logging OR console + rotating file logs.
- Tunes noisy third-party library loggers (sqlalchemy).
"""

import contextvars
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Context variables for dynamic log metadata
cv_operation = contextvars.ContextVar("operation", default="-")
cv_taxonomy = contextvars.ContextVar("taxonomy", default="-")
cv_term_id = contextvars.ContextVar("term_id", default="-")


class ContextInjectFilter(logging.Filter):
    """Inject context variables into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.op = cv_operation.get() or "-"
        record.tax = cv_taxonomy.get() or "-"
        record.term = cv_term_id.get() or "-"
        return True


def set_log_context(
    *,
    operation: str | None = None,
    taxonomy: str | None = None,
    term_id: int | None = None,
) -> None:
    """Update logging context (thread-safe via contextvars)."""
    if operation is not None:
        cv_operation.set(str(operation))
    if taxonomy is not None:
        cv_taxonomy.set(str(taxonomy))
    if term_id is not None:
        cv_term_id.set(str(int(term_id)))


def clear_log_context() -> None:
    """Reset all context fields to their defaults."""
    cv_operation.set("-")
    cv_taxonomy.set("-")
    cv_term_id.set("-")


def configure_logging(
    *,
    log_file: Path | None = None,
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure application logging with contextvars support.

    Args:
        log_file: Path to log file
        console_level: Minimum level for console output (default: INFO)
        file_level: Minimum level for file output (default: DEBUG)
        max_bytes: Max log file size before rotation
        backup_count: Number of backup files to keep
    """
    # Clear existing handlers to avoid duplicate logs if called multiple times
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)  # keep root permissive; handlers enforce levels

    console_fmt = "%(asctime)s [%(levelname)s] op=%(op)s tax=%(tax)s term=%(term)s | %(message)s"
    file_fmt = "%(asctime)s [%(levelname)s] %(name)s | op=%(op)s tax=%(tax)s term=%(term)s | %(message)s"

    console_formatter = logging.Formatter(console_fmt, datefmt="%H:%M:%S")
    file_formatter = logging.Formatter(file_fmt, datefmt="%Y-%m-%d %H:%M:%S")

    ctx_filter = ContextInjectFilter()

    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(console_formatter)
    ch.addFilter(ctx_filter)
    root.addHandler(ch)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        fh.setLevel(file_level)
        fh.setFormatter(file_formatter)
        fh.addFilter(ctx_filter)
        root.addHandler(fh)

    # Third-party library log levels (echo_sql still enables statement logging per engine)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured (console_level=%s, file=%s)",
        logging.getLevelName(console_level),
        str(log_file) if log_file is not None else "None",
    )
