"""Logging setup and the telemetry collaborator injected into services."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from prometheus_client import CollectorRegistry, Counter


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """Configure the root logger for the service.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        Format type: "standard" or "json".
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("bookkeeping").setLevel(log_level)
    logging.getLogger("psycopg").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            log_data.update(fields)
        return json.dumps(log_data, default=str)


class Telemetry:
    """Logger plus Prometheus counters, passed explicitly to the services that report."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger("bookkeeping")
        self.registry = registry or CollectorRegistry()
        self._auth_events = Counter(
            "bookkeeping_auth_events_total",
            "Authentication outcomes by event type.",
            ["event"],
            registry=self.registry,
        )
        self._ownership_decisions = Counter(
            "bookkeeping_ownership_decisions_total",
            "Ownership guard decisions by ledger kind and outcome.",
            ["kind", "decision"],
            registry=self.registry,
        )
        self._ledger_writes = Counter(
            "bookkeeping_ledger_writes_total",
            "Ledger mutations by kind and operation.",
            ["kind", "operation"],
            registry=self.registry,
        )

    def auth_event(self, event: str, **fields: Any) -> None:
        """Record a register/login/session outcome."""
        self._auth_events.labels(event=event).inc()
        level = logging.WARNING if event.endswith("failed") else logging.INFO
        self.logger.log(level, "auth %s", event, extra={"fields": {"event": event, **fields}})

    def ownership_decision(self, kind: str, decision: str, record_id: str, owner: Any) -> None:
        """Record an ownership guard outcome; denials are logged at WARNING."""
        self._ownership_decisions.labels(kind=kind, decision=decision).inc()
        if decision != "allowed":
            self.logger.warning(
                "%s %s denied for owner %s: %s",
                kind,
                record_id,
                owner,
                decision,
                extra={"fields": {"kind": kind, "record_id": record_id, "decision": decision}},
            )

    def ledger_write(self, kind: str, operation: str, record_id: str | None = None) -> None:
        """Record a successful ledger create/update/delete."""
        self._ledger_writes.labels(kind=kind, operation=operation).inc()
        self.logger.info("%s %s %s", kind, operation, record_id or "")

    def unexpected(self, message: str, exc: BaseException) -> None:
        """Log an internal failure with its traceback."""
        self.logger.error(message, exc_info=exc)
