"""
Audit Logger

DESIGN DECISION: Every call through the layer is logged as typed events.
This provides:
1. Complete traceability from validation to cache sync
2. The only visible trace of a swallowed cache-sync failure
3. Debugging information when the two API generations disagree

The audit logger:
- Is async so it can forward to an async sink
- Gracefully handles failures (a broken sink never fails a call)
- Supports correlation IDs to tie the events of one call together
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_sync.audit.sink import AuditSink
from finance_sync.config.settings import AppSettings
from finance_sync.models.audit import SyncEvent, SyncSeverity


def configure_logging(settings: Optional[AppSettings] = None) -> None:
    """
    Configure structlog for the process.

    JSON output by default; a console renderer when `log_json` is off.
    """
    settings = settings or AppSettings()

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, settings.log_level, logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The configured sink, if any
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Destination for events.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger(__name__)

    @property
    def sink(self) -> Optional[AuditSink]:
        return self._sink

    async def log(self, event: SyncEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Forwards to the sink if available.

        Returns True if the sink write succeeded (or no sink is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == SyncSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == SyncSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == SyncSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                return await self._sink.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each call and pass it to every event it emits.
    """
    return uuid4()
