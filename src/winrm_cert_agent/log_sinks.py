"""
Outcome logging sinks.

Each run writes exactly one outcome record. The record goes to the
"winrm_cert_agent.outcome" logger, whose handlers are the sinks chosen in
config:

- file: single-line CMTrace records, readable by CMTrace/OneTrace
- eventlog: Application event log, fixed source and event ID; the source is
  registered on first use (pywin32, through NTEventLogHandler)

Diagnostics from the rest of the package go through the ordinary module
loggers and never reach these sinks.
"""

import getpass
import logging
import logging.handlers
import os
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ._types import Severity
from .exceptions import LoggingSinkUnavailable

logger = logging.getLogger(__name__)

OUTCOME_LOGGER_NAME = "winrm_cert_agent.outcome"

CMTRACE_TERMINATOR = "]LOG]!>"

DEFAULT_EVENT_SOURCE = "WinRM-Cert-Agent"
DEFAULT_EVENT_ID = 6101

SEVERITY_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


def execution_context() -> str:
    """DOMAIN\\user the process runs as (NT AUTHORITY\\SYSTEM under startup policy)."""
    user = os.environ.get("USERNAME")
    if not user:
        try:
            user = getpass.getuser()
        except (KeyError, OSError, ImportError):
            user = "unknown"
    domain = os.environ.get("USERDOMAIN")
    return f"{domain}\\{user}" if domain else user


class ComponentFilter(logging.Filter):
    """Default record.component to the logger name."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "component", None):
            record.component = record.name
        return True


class CMTraceFormatter(logging.Formatter):
    """
    Format records as CMTrace log lines:

    <![LOG[message]LOG]!><time="HH:MM:SS.mmm+bias" date="MM-DD-YYYY"
    component="..." context="..." type="1|2|3" thread="..." file="">
    """

    def __init__(self, context: Optional[str] = None):
        super().__init__()
        self.context = context or execution_context()

    @staticmethod
    def type_code(levelno: int) -> int:
        if levelno >= logging.ERROR:
            return 3
        if levelno >= logging.WARNING:
            return 2
        return 1

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message} {self.formatException(record.exc_info)}"
        message = " ".join(message.splitlines())
        # A literal terminator inside the text would end the CMTrace record early
        message = message.replace(CMTRACE_TERMINATOR, "]LOG] !>")

        stamp = datetime.fromtimestamp(record.created).astimezone()
        offset = stamp.utcoffset()
        # Windows time-zone bias: minutes to add to local time to get UTC
        bias = -int(offset.total_seconds() // 60) if offset else 0

        return (
            f'<![LOG[{message}{CMTRACE_TERMINATOR}'
            f'<time="{stamp:%H:%M:%S}.{int(record.msecs):03d}{bias:+d}" '
            f'date="{stamp:%m-%d-%Y}" '
            f'component="{getattr(record, "component", record.name)}" '
            f'context="{self.context}" '
            f'type="{self.type_code(record.levelno)}" '
            f'thread="{record.thread}" '
            f'file="">'
        )


class EventLogHandler(logging.handlers.NTEventLogHandler):
    """
    Application event log sink with a fixed event ID.

    Raises:
        LoggingSinkUnavailable: pywin32 missing or the source could not be
            registered
    """

    def __init__(
        self,
        source: str = DEFAULT_EVENT_SOURCE,
        event_id: int = DEFAULT_EVENT_ID,
    ):
        # NTEventLogHandler prints to stdout instead of raising when pywin32 is absent
        try:
            import win32evtlog  # noqa: F401
            import win32evtlogutil  # noqa: F401
        except ImportError as e:
            raise LoggingSinkUnavailable("eventlog", "pywin32 is not installed") from e

        self.event_id = event_id
        try:
            super().__init__(source, logtype="Application")
        except Exception as e:
            self.close()
            raise LoggingSinkUnavailable("eventlog", f"cannot register source {source}: {e}") from e

    def getMessageID(self, record: logging.LogRecord) -> int:
        return self.event_id


class OutcomeLog:
    """The logging collaborator: log(severity, message, component)."""

    def __init__(self, target: Optional[logging.Logger] = None):
        self._logger = target or logging.getLogger(OUTCOME_LOGGER_NAME)

    def log(self, severity: Severity, message: str, component: str) -> None:
        self._logger.log(SEVERITY_LEVELS[severity], message, extra={"component": component})


def build_file_handler(path: Path, context: Optional[str] = None) -> logging.Handler:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        raise LoggingSinkUnavailable("file", f"cannot open {path}: {e}") from e
    handler.setFormatter(CMTraceFormatter(context))
    return handler


def build_eventlog_handler(source: str, event_id: int) -> logging.Handler:
    handler = EventLogHandler(source, event_id)
    handler.setFormatter(logging.Formatter("[%(component)s] %(message)s"))
    return handler


def configure_outcome_log(config) -> OutcomeLog:
    """
    Attach the configured sinks to the outcome logger.

    Args:
        config: AgentConfig

    Returns:
        OutcomeLog writing to the configured sinks

    Raises:
        LoggingSinkUnavailable: If any configured sink cannot be opened
    """
    handlers: List[logging.Handler] = []

    if config.log_sink in ("file", "both"):
        handlers.append(build_file_handler(config.log_file))
        logger.debug(f"Outcome file sink: {config.log_file}")

    if config.log_sink in ("eventlog", "both"):
        try:
            handlers.append(build_eventlog_handler(config.event_source, config.event_id))
        except LoggingSinkUnavailable:
            for handler in handlers:
                handler.close()
            raise
        logger.debug(f"Outcome event log sink: {config.event_source}/{config.event_id}")

    outcome_logger = logging.getLogger(OUTCOME_LOGGER_NAME)
    for handler in list(outcome_logger.handlers):
        outcome_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.addFilter(ComponentFilter())
        outcome_logger.addHandler(handler)

    outcome_logger.setLevel(logging.INFO)
    outcome_logger.propagate = False

    return OutcomeLog(outcome_logger)
