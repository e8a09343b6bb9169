"""Logging for cudadiag, built on logfire.

Everything logs through the module-level ``logger``. It forwards to
whichever Logger setup_logger() installed last, and does nothing
before that, so adapters and checks can log without caring whether
configuration has loaded yet.

Output goes to any combination of sinks: the logfire console, a
plain-text file, and logfire.dev. Each sink filters by its own level.
"""

from __future__ import annotations

import contextlib
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from cudadiag.core.base import BaseConfig

_current_logger: Logger | None = None

# Level names, quietest last, mapped to OpenTelemetry severity numbers
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}
_DEFAULT_SEVERITY = LEVELS['info']

# RFC 5424 severity for the {priority} template field (facility user)
_SYSLOG_SEVERITY = {
    'spew': 7, 'trace': 7, 'debug': 7, 'info': 6,
    'warn': 4, 'error': 3, 'fatal': 3,
}

# Span attributes that format templates render themselves
_SKIP_KEYS = frozenset({
    'code.filepath', 'code.lineno', 'code.function',
    'logfire.msg', 'logfire.msg_template', 'logfire.level_num',
    'logfire.span_type', 'logfire.json_schema',
})
_SKIP_PREFIXES = ('otel.', 'telemetry.', 'service.', 'process.')


def severity(level: str | None) -> int:
    """Severity number for a level name; unknown names mean info."""
    return LEVELS.get((level or 'info').lower(), _DEFAULT_SEVERITY)


def level_name(level_num: int) -> str:
    """Closest level name at or below a severity number."""
    for name, number in sorted(
        LEVELS.items(), key=lambda item: item[1], reverse=True
    ):
        if level_num >= number:
            return name
    return "unknown"


def _span_severity(span: ReadableSpan) -> int:
    return (span.attributes or {}).get('logfire.level_num', _DEFAULT_SEVERITY)


class LevelFilteringExporter(SpanExporter):
    """Wraps an exporter, dropping spans below min_level."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._threshold = severity(min_level)

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        wanted = [s for s in spans if _span_severity(s) >= self._threshold]
        if not wanted:
            return SpanExportResult.SUCCESS
        return self._exporter.export(wanted)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


def span_fields(span: ReadableSpan) -> dict:
    """Values a sink's format_template may reference."""
    attrs = span.attributes or {}
    name = level_name(_span_severity(span))
    filepath = attrs.get('code.filepath', '')
    lineno = attrs.get('code.lineno', '')
    return {
        'timestamp': datetime.fromtimestamp(
            span.start_time / 1e9, tz=timezone.utc
        ),
        'level': name,
        'message': attrs.get('logfire.msg', span.name),
        'filepath': filepath,
        'lineno': lineno,
        'location': f"{filepath}:{lineno}" if filepath else "",
        'function': attrs.get('code.function', ''),
        'priority': 8 + _SYSLOG_SEVERITY.get(name, 6),
    }


def extra_attributes(span: ReadableSpan) -> dict:
    """Keyword arguments given to the log call, e.g. command=..."""
    return {
        key: value
        for key, value in (span.attributes or {}).items()
        if key not in _SKIP_KEYS and not key.startswith(_SKIP_PREFIXES)
    }


class Sink(BaseConfig):
    """One log destination with its own level and line format."""

    enabled: bool = Field(default=True, description="Write to this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level (spew, trace, debug, info, warn, error, "
            "fatal); None uses the Logger level"
        ),
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "str.format template over timestamp, level, message, "
            "location, priority...; None writes span JSON"
        ),
    )
    single_line: bool = Field(
        default=False,
        description="Escape newlines and tabs so each entry is one line",
    )

    _processor: Any = PrivateAttr(default=None)

    def render(self, span: ReadableSpan) -> str:
        """Format one span as a line (or JSON block) of output."""
        if not self.format_template:
            return span.to_json() + os.linesep

        fields = span_fields(span)
        if self.single_line:
            fields['message'] = (
                fields['message']
                .replace('\\', '\\\\')
                .replace('\n', '\\n')
                .replace('\r', '\\r')
                .replace('\t', '\\t')
            )
        try:
            line = self.format_template.format(**fields)
        except KeyError as e:
            return f"ERROR: unknown field {e} in format_template\n"

        extras = extra_attributes(span)
        if extras:
            line += " │ " + " ".join(
                f"{key}={value!r}" for key, value in sorted(extras.items())
            )
        return line + "\n"

    def create_processor(self, log_root: Path, run_name: str):
        """Span processor feeding this sink, or None when logfire
        itself handles the output."""
        return None

    def close(self):
        if self._processor is not None:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """stderr output through logfire's console renderer."""

    verbose: bool = Field(
        default=False, description="Include span attributes"
    )
    colors: str = Field(
        default="auto", description="auto, always or never"
    )


class FileSink(Sink):
    """Appends formatted entries to a text file."""

    enabled: bool = Field(default=False, description="Write a log file")
    path: str = Field(
        default="{log_root}/{run_name}/cudadiag.log",
        description="File path; {log_root} and {run_name} are filled in",
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%d %H:%M:%S} {level:<5} {message}",
        description="Line format (see Sink.format_template)",
    )

    _file: Any = PrivateAttr(default=None)

    def resolve_path(self, log_root: Path, run_name: str) -> Path:
        return Path(self.path.format(log_root=log_root, run_name=run_name))

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        path = self.resolve_path(log_root, run_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Kept open until close(); line buffered
        self._file = open(path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(out=self._file, formatter=self.render)
        return BatchSpanProcessor(LevelFilteringExporter(exporter, self.level))

    def close(self):
        # Flush pending spans before the file goes away
        super().close()
        if self._file is not None and not self._file.closed:
            with contextlib.suppress(Exception):
                self._file.close()


class LogfireSink(Sink):
    """Ships spans to logfire.dev."""

    enabled: bool = Field(default=False, description="Send to logfire.dev")
    token: str | None = Field(
        default=None,
        description="Write token; LOGFIRE_TOKEN is used when unset",
    )


class Logger(BaseConfig):
    """Configured set of sinks plus the logging calls themselves.

    Closing it (directly, via `with`, or through Config.close())
    closes every sink, which flushes the log file.
    """

    level: str = Field(
        default="warn",
        description=(
            "Level for sinks that do not set their own. warn keeps "
            "logs out of the diagnostic report"
        ),
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode='after')
    def _inherit_level(self) -> Logger:
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str):
        """Open the enabled sinks and (re)configure logfire."""
        import logfire
        from logfire import ConsoleOptions

        extra_processors = []
        for sink in (self.console, self.file, self.logfire):
            if not sink.enabled:
                continue
            sink._processor = sink.create_processor(log_root, run_name)
            if sink._processor is not None:
                extra_processors.append(sink._processor)

        console = False
        if self.console.enabled:
            console = ConsoleOptions(
                # logfire has no spew level
                min_log_level=(
                    "trace" if self.console.level == "spew"
                    else self.console.level
                ),
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )

        logfire.configure(
            service_name=f"cudadiag-{run_name}",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=extra_processors or None,
        )

    def log(self, level: str, msg: str, **attributes):
        """Log msg at a named level; attributes are shown as key=value
        and may be referenced from msg as {name}."""
        import logfire
        logfire.log(
            level=severity(level),
            msg_template=msg,
            attributes=attributes or None,
        )

    def spew(self, msg: str, **attributes):
        """Noisier than trace: per-line subprocess output and such."""
        self.log('spew', msg, **attributes)

    def trace(self, msg: str, **attributes):
        self.log('trace', msg, **attributes)

    def debug(self, msg: str, **attributes):
        self.log('debug', msg, **attributes)

    def info(self, msg: str, **attributes):
        self.log('info', msg, **attributes)

    def warn(self, msg: str, **attributes):
        self.log('warn', msg, **attributes)

    warning = warn

    def error(self, msg: str, **attributes):
        self.log('error', msg, **attributes)

    def span(self, msg: str, **attributes):
        """Context manager grouping the logs emitted inside it."""
        import logfire
        return logfire.span(msg, **attributes)


class _LoggerProxy:
    """Stand-in for the active Logger; a no-op until one exists."""

    def __getattr__(self, name):
        if _current_logger is not None:
            return getattr(_current_logger, name)

        def ignore(*args, **kwargs):  # noqa: ARG001
            return contextlib.nullcontext()
        return ignore

    def __enter__(self):
        if _current_logger is not None:
            _current_logger.__enter__()
        return self

    def __exit__(self, *exc_info):
        if _current_logger is not None:
            return _current_logger.__exit__(*exc_info)
        return False


logger = _LoggerProxy()


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "warn",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Create, set up and install the global Logger.

    Config calls this once settings have loaded; tests call it
    directly with the sinks they need.
    """
    global _current_logger

    installed = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    installed.setup(log_root, run_name)
    _current_logger = installed
    return installed
