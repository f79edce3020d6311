"""Logging for rcverify, built on logfire.

Every record is a logfire span. Where spans end up is decided by the
sinks on a Logger:

    console  logfire's own console output
    file     spans rendered as text (or JSON) into a log file
    otlp     spans shipped to an OpenTelemetry collector
    logfire  spans sent to the logfire.dev service

Modules log through the module level `logger` proxy, which forwards to
whatever Logger setup_logger() last installed.
"""

from __future__ import annotations

import contextlib
import os
from abc import abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
    SpanExportResult,
)
from pydantic import Field, PrivateAttr, model_validator

from rcverify.core.base import BaseConfig

# Level names, quietest first, mapped to OpenTelemetry severity numbers.
# spew sits below trace and carries tool output line by line.
LEVELS = {
    "spew": logs_pb2.SEVERITY_NUMBER_TRACE,
    "trace": logs_pb2.SEVERITY_NUMBER_TRACE3,
    "debug": logs_pb2.SEVERITY_NUMBER_DEBUG,
    "info": logs_pb2.SEVERITY_NUMBER_INFO,
    "warn": logs_pb2.SEVERITY_NUMBER_WARN,
    "error": logs_pb2.SEVERITY_NUMBER_ERROR,
    "fatal": logs_pb2.SEVERITY_NUMBER_FATAL,
}

# Span attributes that belong to the instrumentation, not the caller
_INTERNAL_PREFIXES = (
    "logfire.", "code.", "otel.", "telemetry.", "service.", "process.",
)

_current_logger: Logger | None = None


def severity(level: str | None) -> int:
    """Severity number for a level name (info when unknown or None)."""
    return LEVELS.get((level or "info").lower(), LEVELS["info"])


def level_name(severity_number: int) -> str:
    """Loudest level name whose severity severity_number reaches."""
    name = "spew"
    for candidate, threshold in LEVELS.items():
        if severity_number >= threshold:
            name = candidate
    return name


def _span_severity(span: ReadableSpan) -> int:
    return (span.attributes or {}).get("logfire.level_num", LEVELS["info"])


def span_fields(span: ReadableSpan) -> dict[str, Any]:
    """Values a FileSink format_template can reference."""
    attrs = span.attributes or {}
    filepath = attrs.get("code.filepath", "")
    lineno = attrs.get("code.lineno", "")
    return {
        "timestamp": datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
        "level": level_name(_span_severity(span)),
        "message": attrs.get("logfire.msg", span.name),
        "filepath": filepath,
        "lineno": lineno,
        "location": f"{filepath}:{lineno}" if filepath else "",
        "function": attrs.get("code.function", ""),
    }


def caller_attributes(span: ReadableSpan) -> dict[str, Any]:
    """Attributes passed by the caller, e.g. environment='jdk-17'."""
    return {
        key: value
        for key, value in (span.attributes or {}).items()
        if not key.startswith(_INTERNAL_PREFIXES)
    }


class _LoggerProxy:
    """Stands in for the current Logger.

    Calls made before setup_logger() are dropped, so modules and tests
    can log without configuring anything first.
    """

    def __getattr__(self, name):
        if _current_logger is None:
            return lambda *args, **kwargs: None
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *exc_info):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*exc_info)


logger = _LoggerProxy()


class LevelFilteringExporter(SpanExporter):
    """Passes on only the spans at or above min_level."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._threshold = severity(min_level)

    def export(self, spans) -> SpanExportResult:
        kept = [s for s in spans if _span_severity(s) >= self._threshold]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """One destination for log spans."""

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level: spew, trace, debug, info, warn, error, "
            "fatal. Unset inherits Logger.level"
        ),
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "str.format template over timestamp, level, message, "
            "location, filepath, lineno, function. Unset writes JSON"
        ),
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Write newlines and tabs in messages as \\n and \\t",
    )

    _processor: Any = PrivateAttr(default=None)

    def render(self, span: ReadableSpan) -> str:
        """One span as one line of output."""
        if not self.format_template:
            return span.to_json() + os.linesep

        fields = span_fields(span)
        if self.escape_special_characters:
            fields["message"] = (
                fields["message"]
                .replace("\\", "\\\\")
                .replace("\n", "\\n")
                .replace("\r", "\\r")
                .replace("\t", "\\t")
            )

        try:
            line = self.format_template.format(**fields)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = caller_attributes(span)
        if extra:
            line += " │ " + " ".join(
                f"{key}={value!r}" for key, value in sorted(extra.items())
            )
        return line + "\n"

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Span processor for this sink, or None if logfire handles it."""

    def close(self):
        if self._processor is not None:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Human readable output on the terminal."""

    verbose: bool = Field(default=False, description="Show span details")
    colors: str = Field(
        default="auto", description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class FileSink(Sink):
    """Log file under the log root, held open while the run lasts."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{run_name}/rcverify.log",
        description="Log file path. Placeholders: {log_root}, {run_name}",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        log_path = Path(self.path.format(log_root=log_root, run_name=run_name))
        log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(  # noqa: SIM115
            log_path, "a", buffering=1, encoding="utf-8"
        )

        exporter = ConsoleSpanExporter(out=self._file, formatter=self.render)
        return BatchSpanProcessor(LevelFilteringExporter(exporter, self.level))

    def close(self):
        # Processor first so queued spans reach the file
        super().close()
        if self._file is not None and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.close()


class OTLPSink(Sink):
    """Export to an OpenTelemetry collector over gRPC."""

    enabled: bool = Field(default=False, description="Enable OTLP export")
    endpoint: str = Field(
        default="http://localhost:4317", description="Collector endpoint"
    )
    insecure: bool = Field(default=True, description="Skip TLS")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra request headers"
    )

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        exporter = OTLPSpanExporter(
            endpoint=self.endpoint,
            insecure=self.insecure,
            headers=self.headers or None,
        )
        return BatchSpanProcessor(LevelFilteringExporter(exporter, self.level))


class LogfireSink(Sink):
    """The logfire.dev hosted service."""

    enabled: bool = Field(default=False, description="Send to logfire.dev")
    token: str | None = Field(
        default=None, description="Write token (else LOGFIRE_TOKEN)"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class Logger(BaseConfig):
    """Configured set of sinks plus the logging calls.

    A Logger is closeable; `with logger:` flushes and closes the file
    sink when the run ends, however it ends.
    """

    level: str = Field(
        default="info",
        description="Level for sinks that do not set their own",
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    otlp: OTLPSink = Field(default_factory=OTLPSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode="after")
    def _inherit_level(self) -> Logger:
        for sink in (self.console, self.file, self.otlp):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str):
        """Open the enabled sinks and point logfire at them."""
        import logfire

        extra_processors = []
        for sink in (self.console, self.file, self.otlp, self.logfire):
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, run_name)
                if sink._processor is not None:
                    extra_processors.append(sink._processor)

        console = False
        if self.console.enabled:
            console = logfire.ConsoleOptions(
                # logfire has no level below trace
                min_log_level=(
                    "trace" if self.console.level == "spew"
                    else self.console.level
                ),
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )

        logfire.configure(
            service_name=f"rcverify-{run_name}",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=extra_processors or None,
        )

    def log(self, level: str, msg: str, **attributes):
        """Log msg at a named level.

        msg is a logfire template: "{line}" with line=... fills in.
        """
        import logfire

        logfire.log(severity(level), msg, attributes=attributes or None)

    def spew(self, msg: str, **attributes):
        self.log("spew", msg, **attributes)

    def trace(self, msg: str, **attributes):
        self.log("trace", msg, **attributes)

    def debug(self, msg: str, **attributes):
        self.log("debug", msg, **attributes)

    def info(self, msg: str, **attributes):
        self.log("info", msg, **attributes)

    def warn(self, msg: str, **attributes):
        self.log("warn", msg, **attributes)

    def error(self, msg: str, **attributes):
        self.log("error", msg, **attributes)

    def span(self, msg: str, **attributes):
        """Group the records logged inside a block:

            with logger.span("Fetch", url=url):
                ...
        """
        import logfire

        return logfire.span(msg, **attributes)


def setup_logger(
    log_root: Path,
    run_name: str,
    console: ConsoleSink | None = None,
    otlp: OTLPSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Install a new global Logger and return it."""
    global _current_logger

    _current_logger = Logger(
        console=console or ConsoleSink(),
        otlp=otlp or OTLPSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger
